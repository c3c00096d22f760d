"""Shared constants and data structures for the WAD decoder."""
import re
from dataclasses import dataclass
from typing import Optional

# Header / directory
HEADER_SIZE = 12
DIR_ENTRY_SIZE = 16
LUMP_NAME_LENGTH = 8
ARCHIVE_KINDS = ("IWAD", "PWAD")

# Palettes and colormaps
PALETTE_COLORS = 256
PALETTE_SIZE = PALETTE_COLORS * 3  # 768
COLORMAP_SIZE = 256

# Pictures
POST_END = 0xFF
DEFAULT_SPRITES = ("SUITA0", "TROOA1", "BKEYA0")
SPRITE_MARKERS = (("S_START", "S_END"), ("SS_START", "SS_END"))

# Levels
LEVEL_MARKER_RE = re.compile(r"^E\dM\d$")
BLOCKLIST_START = 0x0000
BLOCKLIST_END = 0xFFFF

# BSP node child indicator
NF_SUBSECTOR = 0x8000

# LineDef flags
ML_TWOSIDED = 4


def to_signed16(value: int) -> int:
    """Reinterpret a raw unsigned 16-bit field as a signed short."""
    return value - 0x10000 if value & 0x8000 else value


# ─── Archive structures ───

@dataclass(frozen=True)
class Header:
    kind: str
    lump_count: int
    directory_offset: int


@dataclass(frozen=True)
class DirectoryEntry:
    offset: int
    size: int
    name: str

    @property
    def end(self) -> int:
        return self.offset + self.size


# ─── Graphics ───

@dataclass(frozen=True)
class Palette:
    """256 (r, g, b) triples."""
    colors: tuple

    def __len__(self) -> int:
        return len(self.colors)

    def __getitem__(self, index: int) -> tuple:
        return self.colors[index]


@dataclass(frozen=True)
class Colormap:
    """256 palette indices; entry i is the color that index i is remapped to."""
    indices: bytes

    def __len__(self) -> int:
        return len(self.indices)

    def __getitem__(self, index: int) -> int:
        return self.indices[index]


@dataclass(frozen=True)
class SpritePost:
    column: int
    row: int
    size: int
    pixels: bytes

    @property
    def end_row(self) -> int:
        return self.row + self.size


@dataclass(frozen=True)
class Sprite:
    name: str
    width: int
    height: int
    left_offset: int
    top_offset: int
    posts: tuple = ()

    def column_posts(self, column: int) -> list:
        return [p for p in self.posts if p.column == column]

    def overflow_rows(self) -> int:
        """Number of post pixels that fall below the declared picture height."""
        return sum(max(0, p.end_row - max(p.row, self.height)) for p in self.posts)


# ─── Map data structures ───

@dataclass(frozen=True)
class Thing:
    x: int
    y: int
    angle: int
    type: int
    options: int


@dataclass(frozen=True)
class Linedef:
    start_vertex: int
    end_vertex: int
    flags: int
    line_type: int
    tag: int
    right_sidedef: int
    left_sidedef: int

    @property
    def two_sided(self) -> bool:
        return bool(self.flags & ML_TWOSIDED)


@dataclass(frozen=True)
class Sidedef:
    x_offset: int
    y_offset: int
    upper_texture: str
    lower_texture: str
    middle_texture: str
    sector: int


@dataclass(frozen=True)
class Vertex:
    x: int
    y: int


@dataclass(frozen=True)
class Seg:
    start_vertex: int
    end_vertex: int
    angle: int  # BAM >> 16
    linedef: int
    direction: int
    offset: int


@dataclass(frozen=True)
class Subsector:
    seg_count: int
    first_seg: int


@dataclass(frozen=True)
class Node:
    x: int
    y: int
    dx: int
    dy: int
    # [top, bottom, left, right]
    right_bbox: tuple
    left_bbox: tuple
    right_child: int
    left_child: int

    def _child(self, side: str) -> int:
        if side == "right":
            return self.right_child
        if side == "left":
            return self.left_child
        raise ValueError(f"side must be 'right' or 'left', not {side!r}")

    def child_is_subsector(self, side: str) -> bool:
        return bool(self._child(side) & NF_SUBSECTOR)

    def child_index(self, side: str) -> int:
        """Child index with the subsector tag bit removed."""
        return self._child(side) & ~NF_SUBSECTOR


@dataclass(frozen=True)
class Sector:
    floor_height: int
    ceiling_height: int
    floor_texture: str
    ceiling_texture: str
    light_level: int
    special: int
    tag: int


@dataclass(frozen=True)
class Blockmap:
    origin_x: int
    origin_y: int
    columns: int
    rows: int
    # One tuple of linedef indices per cell, row-major
    blocklists: tuple = ()

    def block(self, column: int, row: int) -> tuple:
        if not (0 <= column < self.columns and 0 <= row < self.rows):
            raise IndexError(f"block ({column}, {row}) outside {self.columns}x{self.rows} grid")
        return self.blocklists[row * self.columns + column]


@dataclass(frozen=True)
class Level:
    """Holds all decoded lumps of one map."""
    name: str
    things: tuple = ()
    linedefs: tuple = ()
    sidedefs: tuple = ()
    vertices: tuple = ()
    segs: tuple = ()
    subsectors: tuple = ()
    nodes: tuple = ()
    sectors: tuple = ()
    blockmap: Optional[Blockmap] = None
    # Names of the lumps consumed, in directory order
    lumps: tuple = ()
