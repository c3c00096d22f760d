import struct

import pytest

from doomwad.errors import MalformedHeader, OutOfBounds, WadError, WadIOError
from doomwad.level import read_levels
from doomwad.wad import (
    load_wad, parse_directory, read_palettes, read_colormaps, read_sprite,
)


def test_single_lump_archive(make_wad) -> None:
    data = make_wad([("TEST", b"\x01\x02\x03\x04")], directory_first=True)
    d = parse_directory(data)

    assert d.header.kind == "IWAD"
    assert d.header.lump_count == 1
    assert d.header.directory_offset == 12

    entry = d.entries[0]
    assert entry.name == "TEST"
    assert entry.offset == 28
    assert entry.size == 4
    assert d.name_index["TEST"] == 0
    assert d.lump_bytes(entry) == b"\x01\x02\x03\x04"


def test_names_are_uppercased(make_wad) -> None:
    d = parse_directory(make_wad([("e1m1", b"")]))
    assert d.entries[0].name == "E1M1"
    assert d.find("e1m1") == 0


def test_directory_past_end_is_malformed() -> None:
    data = struct.pack("<4sII", b"IWAD", 2, 12) + b"\x00" * 16
    with pytest.raises(MalformedHeader):
        parse_directory(data)


def test_file_shorter_than_header_is_malformed() -> None:
    with pytest.raises(MalformedHeader):
        parse_directory(b"IWAD\x01\x00")


def test_duplicate_names_last_wins_but_order_is_kept(make_wad) -> None:
    d = parse_directory(make_wad([("PLAYPAL", b"a"), ("OTHER", b""), ("PLAYPAL", b"b")]))
    assert [e.name for e in d.entries] == ["PLAYPAL", "OTHER", "PLAYPAL"]
    assert d.name_index["PLAYPAL"] == 2
    assert d.find("PLAYPAL") == 2
    assert d.find("PLAYPAL", first=True) == 0
    assert d.lump_bytes(d.entry("PLAYPAL")) == b"b"
    assert d.lump_bytes(d.entry("PLAYPAL", first=True)) == b"a"


def test_missing_name_is_minus_one(make_wad) -> None:
    d = parse_directory(make_wad([("A", b"")]))
    assert d.find("NOPE") == -1


def test_name_index_is_read_only(make_wad) -> None:
    d = parse_directory(make_wad([("A", b"")]))
    with pytest.raises(TypeError):
        d.name_index["B"] = 1


def test_entry_past_end_of_file_fails_when_opened() -> None:
    header = struct.pack("<4sII", b"PWAD", 1, 12)
    entry = struct.pack("<II8s", 0, 500, b"BIG")
    d = parse_directory(header + entry)
    with pytest.raises(OutOfBounds) as exc:
        d.cursor(d.entries[0])
    assert exc.value.lump == "BIG"


def test_load_missing_file(tmp_path) -> None:
    with pytest.raises(WadIOError):
        load_wad(str(tmp_path / "absent.wad"))


def test_load_reads_whole_file(tmp_path) -> None:
    path = tmp_path / "x.wad"
    path.write_bytes(b"IWAD" + b"\x00" * 8)
    assert load_wad(str(path)) == b"IWAD" + b"\x00" * 8


def _decode_everything(data: bytes) -> None:
    d = parse_directory(data)
    read_palettes(d)
    read_colormaps(d)
    read_sprite(d, "SPR")
    read_levels(d)


def test_every_truncation_is_reported(make_wad, make_picture, make_playpal) -> None:
    picture = make_picture(2, 4, [[(0, [1, 2])], []])
    data = make_wad(
        [
            ("PLAYPAL", make_playpal(1)),
            ("COLORMAP", bytes(256)),
            ("SPR", picture),
            ("E1M1", b""),
            ("VERTEXES", struct.pack("<4H", 1, 2, 3, 4)),
        ],
        directory_first=True,
    )
    _decode_everything(data)

    for n in range(len(data)):
        with pytest.raises(WadError):
            _decode_everything(data[:n])
