"""Builders for synthetic WAD archives and lumps."""

import struct

import pytest


def build_wad(lumps, kind=b"IWAD", directory_first=False) -> bytes:
    """
    Pack ``(name, data)`` pairs into an archive.

    Lump bodies follow the header; the directory goes last unless
    *directory_first* is set, in which case it sits right after the header.
    """
    count = len(lumps)
    data_start = 12 + 16 * count if directory_first else 12

    body = b""
    entries = []
    for name, data in lumps:
        entries.append((data_start + len(body), len(data), name))
        body += data

    directory = b"".join(
        struct.pack("<II8s", offset, size, name.encode("ascii"))
        for offset, size, name in entries
    )
    if directory_first:
        header = struct.pack("<4sII", kind, count, 12)
        return header + directory + body
    header = struct.pack("<4sII", kind, count, 12 + len(body))
    return header + body + directory


def build_picture(width, height, columns, left=0, top=0, pad=0xAA) -> bytes:
    """
    Pack a picture lump. *columns* holds, per column, a list of
    ``(row, pixels)`` posts; padding bytes are filled with *pad*.
    """
    assert len(columns) == width
    header = struct.pack("<4H", width, height, left, top)
    table_size = 4 * width

    column_data = []
    for posts in columns:
        chunk = b""
        for row, pixels in posts:
            chunk += bytes([row, len(pixels), pad]) + bytes(pixels) + bytes([pad])
        column_data.append(chunk + b"\xff")

    offsets = []
    pos = len(header) + table_size
    for chunk in column_data:
        offsets.append(pos)
        pos += len(chunk)

    return header + struct.pack(f"<{width}I", *offsets) + b"".join(column_data)


def build_blockmap(origin_x, origin_y, columns, rows, lists) -> bytes:
    """Pack a BLOCKMAP lump; *lists* holds one list of linedef indices per cell."""
    assert len(lists) == columns * rows
    words = 4 + columns * rows
    offsets = []
    body = []
    for lines in lists:
        offsets.append(words + len(body))
        body.extend([0x0000, *lines, 0xFFFF])
    return struct.pack(
        f"<{4 + len(offsets) + len(body)}H",
        origin_x, origin_y, columns, rows, *offsets, *body,
    )


def playpal(count=1) -> bytes:
    return bytes((i * 7 + p) % 256 for p in range(count) for i in range(768))


@pytest.fixture
def make_wad():
    return build_wad


@pytest.fixture
def make_picture():
    return build_picture


@pytest.fixture
def make_blockmap():
    return build_blockmap


@pytest.fixture
def make_playpal():
    return playpal


@pytest.fixture
def write_wad(tmp_path):
    """Write a built archive to disk and return its path."""
    def write(lumps, name="test.wad", **kwargs):
        path = tmp_path / name
        path.write_bytes(build_wad(lumps, **kwargs))
        return str(path)
    return write
