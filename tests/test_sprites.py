import struct

import pytest

from doomwad.cursor import ByteCursor
from doomwad.defs import SpritePost
from doomwad.errors import MissingLump, OutOfBounds
from doomwad.wad import decode_picture, parse_directory, read_sprite, sprite_lump_names


def _sprite(make_wad, picture, name="TROOA1"):
    return read_sprite(parse_directory(make_wad([(name, picture)])), name)


def test_header_fields(make_wad, make_picture) -> None:
    picture = make_picture(3, 10, [[], [], []], left=5, top=7)
    sprite = _sprite(make_wad, picture)
    assert (sprite.width, sprite.height) == (3, 10)
    assert (sprite.left_offset, sprite.top_offset) == (5, 7)
    assert sprite.name == "TROOA1"


def test_transparent_column_yields_no_posts(make_wad, make_picture) -> None:
    picture = make_picture(2, 4, [[], [(1, [9])]])
    sprite = _sprite(make_wad, picture)
    assert sprite.column_posts(0) == []
    assert sprite.posts == (SpritePost(column=1, row=1, size=1, pixels=b"\x09"),)


def test_posts_skip_padding_bytes(make_wad, make_picture) -> None:
    picture = make_picture(1, 16, [[(0, [1, 2, 3]), (5, [4, 5])]], pad=0x77)
    sprite = _sprite(make_wad, picture)
    assert sprite.posts == (
        SpritePost(column=0, row=0, size=3, pixels=b"\x01\x02\x03"),
        SpritePost(column=0, row=5, size=2, pixels=b"\x04\x05"),
    )


def test_post_consumes_prefix_pad_data_pad() -> None:
    # One column, post of k=3 pixels; the next byte after 2 + 3 + 2 is the terminator
    column = bytes([0, 3, 0xEE, 1, 2, 3, 0xEE, 0xFF])
    header = struct.pack("<4HI", 1, 8, 0, 0, 12)

    sprite = decode_picture("X", ByteCursor(header + column))
    assert len(sprite.posts) == 1
    assert sprite.posts[0].pixels == b"\x01\x02\x03"


def test_column_offsets_are_measured_from_lump_start(make_wad, make_picture) -> None:
    picture = make_picture(2, 4, [[(0, [1])], [(2, [8, 9])]])
    # Prefix another lump so the sprite does not start at archive offset 12
    d = parse_directory(make_wad([("OTHER", b"\x00" * 37), ("SPR", picture)]))
    sprite = read_sprite(d, "SPR")
    assert [(p.column, p.row, p.pixels) for p in sprite.posts] == [
        (0, 0, b"\x01"),
        (1, 2, b"\x08\x09"),
    ]


def test_decoding_is_idempotent(make_wad, make_picture) -> None:
    picture = make_picture(2, 8, [[(0, [1, 2])], [(3, [4])]])
    d = parse_directory(make_wad([("SPR", picture)]))
    assert read_sprite(d, "SPR") == read_sprite(d, "SPR")


def test_missing_sprite(make_wad) -> None:
    with pytest.raises(MissingLump) as exc:
        read_sprite(parse_directory(make_wad([("A", b"")])), "BKEYA0")
    assert exc.value.name == "BKEYA0"


def test_post_below_height_is_kept_and_counted(make_wad, make_picture) -> None:
    picture = make_picture(1, 4, [[(2, [1, 2, 3, 4])]])
    sprite = _sprite(make_wad, picture)
    assert sprite.posts[0].end_row == 6
    assert sprite.overflow_rows() == 2


def test_missing_terminator_is_out_of_bounds(make_wad) -> None:
    header = struct.pack("<4HI", 1, 8, 0, 0, 12)
    column = bytes([0, 2, 0, 1, 2, 0])  # no 0xFF
    with pytest.raises(OutOfBounds):
        _sprite(make_wad, header + column)


def test_column_offset_outside_lump_is_out_of_bounds(make_wad) -> None:
    picture = struct.pack("<4HI", 1, 8, 0, 0, 400) + b"\xff"
    with pytest.raises(OutOfBounds):
        _sprite(make_wad, picture)


def test_sprite_names_between_markers(make_wad, make_picture) -> None:
    pic = make_picture(1, 1, [[]])
    d = parse_directory(make_wad([
        ("PLAYPAL", b""),
        ("S_START", b""),
        ("TROOA1", pic),
        ("SS_START", b""),
        ("BKEYA0", pic),
        ("SS_END", b""),
        ("S_END", b""),
        ("E1M1", b""),
    ]))
    assert sprite_lump_names(d) == ["TROOA1", "BKEYA0"]
