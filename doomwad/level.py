"""
Level assembler.

DOOM levels have an ExMy marker in the directory (x and y single
digits).  The marker is a zero-size lump that only says "the following
lumps belong to this level".  Lumps are consumed from the entry after
the marker for as long as their names are level lump names; the first
other name ends the level.

On-disk record layouts (all fields little-endian u16 unless noted):
    THINGS     x, y, angle, type, options                           10 bytes
    LINEDEFS   v1, v2, flags, special, tag, right side, left side   14 bytes
    SIDEDEFS   x offset, y offset, upper/lower/middle 8s, sector     30 bytes
    VERTEXES   x, y                                                  4 bytes
    SEGS       v1, v2, angle, linedef, direction, offset            12 bytes
    SSECTORS   seg count, first seg                                  4 bytes
    NODES      x, y, dx, dy, right bbox[4], left bbox[4], children  28 bytes
    SECTORS    floor, ceiling, floor 8s, ceiling 8s, light,
               special, tag                                         26 bytes
    BLOCKMAP   origin x, y, columns, rows, columns*rows offsets,
               then 0x0000-prefixed, 0xFFFF-terminated lists
    REJECT     not decoded
"""

import enum
import logging

from doomwad.cursor import ByteCursor
from doomwad.defs import (
    Level, Thing, Linedef, Sidedef, Vertex, Seg, Subsector, Node, Sector, Blockmap,
    DirectoryEntry, LEVEL_MARKER_RE, LUMP_NAME_LENGTH, BLOCKLIST_START, BLOCKLIST_END,
)

logger = logging.getLogger(__name__)


class LumpKind(enum.Enum):
    THINGS = "THINGS"
    LINEDEFS = "LINEDEFS"
    SIDEDEFS = "SIDEDEFS"
    VERTEXES = "VERTEXES"
    SEGS = "SEGS"
    SSECTORS = "SSECTORS"
    NODES = "NODES"
    SECTORS = "SECTORS"
    REJECT = "REJECT"
    BLOCKMAP = "BLOCKMAP"

    @classmethod
    def from_name(cls, name: str):
        """Return the kind for a lump name, or None if it is not a level lump."""
        try:
            return cls(name)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Per-kind record decoders
# ---------------------------------------------------------------------------

def _read_records(cursor: ByteCursor, read_one) -> list:
    """Decode fixed-width records until the lump is exhausted."""
    records = []
    while not cursor.at_end():
        records.append(read_one(cursor))
    return records


def _thing(c: ByteCursor) -> Thing:
    return Thing(
        x=c.read_u16le(),
        y=c.read_u16le(),
        angle=c.read_u16le(),
        type=c.read_u16le(),
        options=c.read_u16le(),
    )


def _linedef(c: ByteCursor) -> Linedef:
    return Linedef(
        start_vertex=c.read_u16le(),
        end_vertex=c.read_u16le(),
        flags=c.read_u16le(),
        line_type=c.read_u16le(),
        tag=c.read_u16le(),
        right_sidedef=c.read_u16le(),
        left_sidedef=c.read_u16le(),
    )


def _sidedef(c: ByteCursor) -> Sidedef:
    return Sidedef(
        x_offset=c.read_u16le(),
        y_offset=c.read_u16le(),
        upper_texture=c.read_fixed_string(LUMP_NAME_LENGTH),
        lower_texture=c.read_fixed_string(LUMP_NAME_LENGTH),
        middle_texture=c.read_fixed_string(LUMP_NAME_LENGTH),
        sector=c.read_u16le(),
    )


def _vertex(c: ByteCursor) -> Vertex:
    return Vertex(x=c.read_u16le(), y=c.read_u16le())


def _seg(c: ByteCursor) -> Seg:
    return Seg(
        start_vertex=c.read_u16le(),
        end_vertex=c.read_u16le(),
        angle=c.read_u16le(),
        linedef=c.read_u16le(),
        direction=c.read_u16le(),
        offset=c.read_u16le(),
    )


def _subsector(c: ByteCursor) -> Subsector:
    return Subsector(seg_count=c.read_u16le(), first_seg=c.read_u16le())


def _node(c: ByteCursor) -> Node:
    x, y, dx, dy = (c.read_u16le() for _ in range(4))
    right_bbox = tuple(c.read_u16le() for _ in range(4))
    left_bbox = tuple(c.read_u16le() for _ in range(4))
    return Node(
        x=x, y=y, dx=dx, dy=dy,
        right_bbox=right_bbox,
        left_bbox=left_bbox,
        right_child=c.read_u16le(),
        left_child=c.read_u16le(),
    )


def _sector(c: ByteCursor) -> Sector:
    return Sector(
        floor_height=c.read_u16le(),
        ceiling_height=c.read_u16le(),
        floor_texture=c.read_fixed_string(LUMP_NAME_LENGTH),
        ceiling_texture=c.read_fixed_string(LUMP_NAME_LENGTH),
        light_level=c.read_u16le(),
        special=c.read_u16le(),
        tag=c.read_u16le(),
    )


def read_blocklist(cursor: ByteCursor, position: int) -> tuple:
    """
    Read one block list starting at byte *position*: a 0x0000 marker
    (discarded) followed by linedef indices up to the 0xFFFF terminator.
    """
    cursor.seek(position)
    marker = cursor.read_u16le()
    if marker != BLOCKLIST_START:
        logger.debug("Block list at %d starts with %#06x, not 0x0000", position, marker)
    lines = []
    while True:
        value = cursor.read_u16le()
        if value == BLOCKLIST_END:
            break
        lines.append(value)
    return tuple(lines)


def decode_blockmap(cursor: ByteCursor) -> Blockmap:
    """Decode a BLOCKMAP lump; list offsets are in 16-bit words from the lump start."""
    origin_x = cursor.read_u16le()
    origin_y = cursor.read_u16le()
    columns = cursor.read_u16le()
    rows = cursor.read_u16le()
    offsets = [cursor.read_u16le() for _ in range(columns * rows)]

    # Cells frequently share a list, decode each distinct offset once
    cache: dict[int, tuple] = {}
    blocklists = []
    for offset in offsets:
        if offset not in cache:
            cache[offset] = read_blocklist(cursor, offset * 2)
        blocklists.append(cache[offset])

    return Blockmap(
        origin_x=origin_x,
        origin_y=origin_y,
        columns=columns,
        rows=rows,
        blocklists=tuple(blocklists),
    )


def _records(attr: str, read_one):
    def decode(cursor: ByteCursor, name: str):
        return attr, _read_records(cursor, read_one)
    return decode


def _decode_blockmap(cursor: ByteCursor, name: str):
    return "blockmap", decode_blockmap(cursor)


def _skip_reject(cursor: ByteCursor, name: str):
    logger.debug("Skipping REJECT (%d bytes) for %s", len(cursor), name)
    return None, None


# Each decoder returns (Level field, decoded value); (None, None) keeps nothing
LUMP_DECODERS = {
    LumpKind.THINGS: _records("things", _thing),
    LumpKind.LINEDEFS: _records("linedefs", _linedef),
    LumpKind.SIDEDEFS: _records("sidedefs", _sidedef),
    LumpKind.VERTEXES: _records("vertices", _vertex),
    LumpKind.SEGS: _records("segs", _seg),
    LumpKind.SSECTORS: _records("subsectors", _subsector),
    LumpKind.NODES: _records("nodes", _node),
    LumpKind.SECTORS: _records("sectors", _sector),
    LumpKind.REJECT: _skip_reject,
    LumpKind.BLOCKMAP: _decode_blockmap,
}


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def is_level_marker(name: str) -> bool:
    return LEVEL_MARKER_RE.match(name) is not None


def find_level_markers(entries) -> list:
    """Directory indices of every ExMy marker, in directory order."""
    return [i for i, entry in enumerate(entries) if is_level_marker(entry.name)]


def level_run(entries, marker_index: int) -> list:
    """
    The entries belonging to the level whose marker is at *marker_index*:
    the contiguous run of level lump names directly after it.
    """
    run = []
    for entry in entries[marker_index + 1:]:
        if LumpKind.from_name(entry.name) is None:
            break
        run.append(entry)
    return run


def assemble_level(directory, marker_index: int) -> Level:
    """
    Build the Level whose marker sits at *marker_index* in *directory*.

    *directory* is a doomwad.wad.Directory.  Any OutOfBounds raised by a
    record decoder aborts the whole level.
    """
    marker: DirectoryEntry = directory.entries[marker_index]
    logger.info("Found level %s", marker.name)

    # Records are collected here and frozen into the Level at the end
    fields: dict[str, list] = {}
    blockmap = None
    lumps = []
    for entry in level_run(directory.entries, marker_index):
        kind = LumpKind.from_name(entry.name)
        attr, value = LUMP_DECODERS[kind](directory.cursor(entry), marker.name)
        if attr == "blockmap":
            blockmap = value
            count = len(value.blocklists)
        elif attr is None:
            count = 0
        else:
            fields.setdefault(attr, []).extend(value)
            count = len(value)
        lumps.append(entry.name)
        logger.info("Read %d %s...", count, entry.name)

    return Level(
        name=marker.name,
        blockmap=blockmap,
        lumps=tuple(lumps),
        **{attr: tuple(records) for attr, records in fields.items()},
    )


def read_levels(directory) -> list:
    """Assemble every level in *directory*; the first failure propagates."""
    return [
        assemble_level(directory, i)
        for i in find_level_markers(directory.entries)
    ]
