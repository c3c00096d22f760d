"""
WAD archive reader: header, lump directory, palettes, colormaps and
sprites, plus the WAD facade that decodes everything eagerly.

WAD header layout (12 bytes):
    4s  identification  "IWAD" or "PWAD"
    I   numlumps
    I   infotableofs

Lump directory entry (16 bytes each):
    I   filepos
    I   size
    8s  name  (null-padded, compared uppercased)

Level lumps are handled in doomwad.level.
"""

import logging
import os
from types import MappingProxyType
from typing import Iterable, Optional, Union

from doomwad import level as level_mod
from doomwad import ppm
from doomwad.cursor import ByteCursor
from doomwad.defs import (
    Header, DirectoryEntry, Palette, Colormap, Level, Sprite, SpritePost,
    HEADER_SIZE, DIR_ENTRY_SIZE, LUMP_NAME_LENGTH, ARCHIVE_KINDS,
    PALETTE_SIZE, PALETTE_COLORS, COLORMAP_SIZE,
    POST_END, DEFAULT_SPRITES, SPRITE_MARKERS,
)
from doomwad.errors import WadError, WadIOError, MalformedHeader, MissingLump, OutOfBounds
from doomwad.perf import perf

logger = logging.getLogger(__name__)

ALL_SPRITES = "*"


# ---------------------------------------------------------------------------
# Archive loader
# ---------------------------------------------------------------------------

def load_wad(path: str) -> bytes:
    """Read the whole archive at *path* into one immutable buffer."""
    logger.info("Reading WAD %s", path)
    try:
        with open(path, "rb") as f:
            expected = os.fstat(f.fileno()).st_size
            data = f.read()
    except OSError as e:
        raise WadIOError(path, e.strerror or str(e)) from e

    if len(data) != expected:
        raise WadIOError(path, f"truncated read ({len(data)} of {expected} bytes)")
    logger.info("WAD file size is %d", len(data))
    return data


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------

class Directory:
    """
    The parsed header and lump directory of one archive.

    ``entries`` keeps directory order, which is the only ordering signal
    the level assembler has.  Name lookups default to the last entry with
    a given name; ``first=True`` returns the earliest one instead.
    """

    def __init__(self, data: bytes, header: Header, entries: list) -> None:
        self._data = data
        self.header = header
        self.entries = tuple(entries)

        last: dict[str, int] = {}
        first: dict[str, int] = {}
        for i, entry in enumerate(self.entries):
            last[entry.name] = i
            first.setdefault(entry.name, i)
        self._last_index = last
        self._first_index = first

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def name_index(self) -> MappingProxyType:
        """Read-only name -> last directory index mapping."""
        return MappingProxyType(self._last_index)

    def find(self, name: str, first: bool = False) -> int:
        """Return the directory index for *name*, or -1 if not found."""
        index = self._first_index if first else self._last_index
        return index.get(name.upper(), -1)

    def entry(self, name: str, first: bool = False) -> DirectoryEntry:
        idx = self.find(name, first)
        if idx == -1:
            raise MissingLump(name)
        return self.entries[idx]

    def cursor(self, entry: DirectoryEntry) -> ByteCursor:
        """A cursor over exactly the bytes of *entry*; offsets are lump-relative."""
        if entry.end > len(self._data):
            raise OutOfBounds(entry.offset, entry.size, len(self._data), entry.name)
        view = memoryview(self._data)[entry.offset: entry.end]
        return ByteCursor(view, base=entry.offset, label=entry.name)

    def lump_bytes(self, entry: DirectoryEntry) -> bytes:
        """Return an owned copy of the lump described by *entry*."""
        return self.cursor(entry).read_bytes(entry.size)


def parse_directory(data: bytes) -> Directory:
    """Parse the 12-byte header and the lump directory it points to."""
    if len(data) < HEADER_SIZE:
        raise MalformedHeader(
            f"File is {len(data)} bytes, shorter than the {HEADER_SIZE}-byte header"
        )

    cursor = ByteCursor(data)
    kind = cursor.read_fixed_string(4)
    lump_count = cursor.read_u32le()
    directory_offset = cursor.read_u32le()
    header = Header(kind=kind, lump_count=lump_count, directory_offset=directory_offset)

    if kind not in ARCHIVE_KINDS:
        logger.warning("Unexpected archive identification %r", kind)

    directory_end = directory_offset + DIR_ENTRY_SIZE * lump_count
    if directory_end > len(data):
        raise MalformedHeader(
            f"Directory of {lump_count} lumps at offset {directory_offset} "
            f"ends at {directory_end}, past end of file ({len(data)} bytes)"
        )

    cursor.seek(directory_offset)
    entries = []
    for _ in range(lump_count):
        offset = cursor.read_u32le()
        size = cursor.read_u32le()
        name = cursor.read_fixed_string(LUMP_NAME_LENGTH)
        entries.append(DirectoryEntry(offset=offset, size=size, name=name))

    logger.debug("Directory: %d lumps at offset %d", lump_count, directory_offset)
    return Directory(data, header, entries)


# ---------------------------------------------------------------------------
# Palette / colormap loaders
# ---------------------------------------------------------------------------

def read_palettes(directory: Directory, first: bool = False) -> list:
    """
    Split the PLAYPAL lump into 768-byte palettes of 256 RGB triples.

    The palette count is ``size // 768``; the shipped games always hold 14.
    """
    entry = directory.entry("PLAYPAL", first)
    count, rest = divmod(entry.size, PALETTE_SIZE)
    if rest:
        logger.warning("PLAYPAL has %d trailing bytes after %d palettes", rest, count)

    cursor = directory.cursor(entry)
    palettes = []
    for _ in range(count):
        raw = cursor.read_bytes(PALETTE_SIZE)
        colors = tuple(
            (raw[i], raw[i + 1], raw[i + 2]) for i in range(0, PALETTE_COLORS * 3, 3)
        )
        palettes.append(Palette(colors))

    logger.info("Read %d palettes...", len(palettes))
    return palettes


def read_colormaps(directory: Directory, first: bool = False) -> list:
    """Split the COLORMAP lump into 256-byte remap tables (34 in the shipped games)."""
    entry = directory.entry("COLORMAP", first)
    count, rest = divmod(entry.size, COLORMAP_SIZE)
    if rest:
        logger.warning("COLORMAP has %d trailing bytes after %d maps", rest, count)

    cursor = directory.cursor(entry)
    colormaps = [Colormap(cursor.read_bytes(COLORMAP_SIZE)) for _ in range(count)]

    logger.info("Read %d color maps...", len(colormaps))
    return colormaps


# ---------------------------------------------------------------------------
# Sprites
# ---------------------------------------------------------------------------

def decode_picture(name: str, cursor: ByteCursor) -> Sprite:
    """
    Decode a picture lump from a cursor positioned over the whole lump.

    Picture layout:
        4H  width, height, left offset, top offset
        width * I  column offsets, measured from the start of the lump

    Each column is a run of posts closed by a 0xFF byte:
        B   row to start drawing
        B   pixel count
        B   unused padding
        count bytes of palette indices
        B   unused padding
    """
    width = cursor.read_u16le()
    height = cursor.read_u16le()
    left_offset = cursor.read_u16le()
    top_offset = cursor.read_u16le()

    column_offsets = [cursor.read_u32le() for _ in range(width)]

    posts = []
    for column, column_offset in enumerate(column_offsets):
        cursor.seek(column_offset)
        while cursor.peek_u8() != POST_END:
            row = cursor.read_u8()
            size = cursor.read_u8()
            cursor.skip(1)
            pixels = cursor.read_bytes(size)
            cursor.skip(1)
            posts.append(SpritePost(column=column, row=row, size=size, pixels=pixels))

    sprite = Sprite(
        name=name,
        width=width,
        height=height,
        left_offset=left_offset,
        top_offset=top_offset,
        posts=tuple(posts),
    )
    if sprite.overflow_rows():
        logger.warning(
            "Sprite %s has %d pixel(s) below its height of %d",
            name, sprite.overflow_rows(), height,
        )
    return sprite


def read_sprite(directory: Directory, name: str, first: bool = False) -> Sprite:
    entry = directory.entry(name, first)
    sprite = decode_picture(entry.name, directory.cursor(entry))
    logger.info(
        "Read sprite %s (%d, %d, %d, %d)",
        entry.name, sprite.width, sprite.height, sprite.left_offset, sprite.top_offset,
    )
    return sprite


def sprite_lump_names(directory: Directory) -> list:
    """Names of every non-empty lump between the sprite start/end markers."""
    names = []
    for start_name, end_name in SPRITE_MARKERS:
        start_idx = directory.find(start_name, first=True)
        end_idx = directory.find(end_name)
        if start_idx == -1 or end_idx == -1:
            continue
        for entry in directory.entries[start_idx + 1: end_idx]:
            if entry.size == 0:
                continue  # nested marker
            if entry.name not in names:
                names.append(entry.name)
    return names


# ---------------------------------------------------------------------------
# Archive facade
# ---------------------------------------------------------------------------

class WAD:
    """
    Opens a WAD file and decodes palettes, colormaps, sprites and levels.

    Everything is decoded up front.  A failure in one operation (a
    missing PLAYPAL, a corrupt sprite, a truncated level) is logged and
    recorded in ``errors`` while the other collections are still built,
    unless *strict* is set, in which case the first failure propagates.

    *lookup* picks which entry a duplicated lump name resolves to:
    ``"last"`` (later lumps override earlier ones) or ``"first"``.
    """

    def __init__(
        self,
        path: str,
        sprites: Union[Iterable[str], str] = DEFAULT_SPRITES,
        lookup: str = "last",
        strict: bool = False,
    ) -> None:
        if lookup not in ("first", "last"):
            raise ValueError(f"lookup must be 'first' or 'last', not {lookup!r}")

        self.path = path
        self.strict = strict
        self._first = lookup == "first"
        self.errors: list[tuple[str, WadError]] = []

        with perf.timer("load", path=path):
            data = load_wad(path)
        with perf.timer("directory"):
            self._directory = parse_directory(data)

        self._palettes = tuple(self._attempt("palettes", read_palettes, self._directory, self._first) or ())
        self._colormaps = tuple(self._attempt("colormaps", read_colormaps, self._directory, self._first) or ())

        if sprites == ALL_SPRITES:
            sprite_names = sprite_lump_names(self._directory)
        elif isinstance(sprites, str):
            sprite_names = [sprites.upper()]
        else:
            sprite_names = [s.upper() for s in sprites]
        decoded = {}
        for name in sprite_names:
            sprite = self._attempt(f"sprite {name}", read_sprite, self._directory, name, self._first)
            if sprite is not None:
                decoded[name] = sprite
        self._sprites = MappingProxyType(decoded)
        logger.info("Read %d sprites...", len(decoded))

        levels = []
        for marker in level_mod.find_level_markers(self._directory.entries):
            name = self._directory.entries[marker].name
            lvl = self._attempt(f"level {name}", level_mod.assemble_level, self._directory, marker)
            if lvl is not None:
                levels.append(lvl)
        self._levels = tuple(levels)

    def _attempt(self, operation: str, func, *args):
        try:
            with perf.timer(operation.split()[0], target=operation):
                return func(*args)
        except WadError as e:
            if self.strict:
                raise
            logger.error("%s failed: %s", operation, e)
            self.errors.append((operation, e))
            return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def header(self) -> Header:
        return self._directory.header

    @property
    def directory(self) -> Directory:
        return self._directory

    @property
    def palettes(self) -> tuple:
        return self._palettes

    @property
    def colormaps(self) -> tuple:
        return self._colormaps

    @property
    def sprites(self) -> MappingProxyType:
        return self._sprites

    @property
    def levels(self) -> tuple:
        return self._levels

    def level(self, name: str) -> Optional[Level]:
        """Return the level named *name* (e.g. "E1M1"), or None."""
        name = name.upper()
        for lvl in self._levels:
            if lvl.name == name:
                return lvl
        return None

    def write_debug_images(self, directory: str) -> list:
        """Write palette, colormap and sprite PPM sheets into *directory*."""
        os.makedirs(directory, exist_ok=True)
        paths = []
        if not self._palettes:
            logger.warning("No palettes decoded; skipping debug images")
            return paths
        paths.extend(ppm.write_palettes(self._palettes, directory))
        if self._colormaps:
            paths.append(ppm.write_colormaps(self._colormaps, self._palettes, directory))
        for sprite in self._sprites.values():
            paths.append(ppm.write_sprite(sprite, self._palettes, directory))
        return paths

    def __str__(self) -> str:
        h = self.header
        lines = [
            "WAD file",
            f"Type: {h.kind}",
            f"Lump Count: {h.lump_count}",
            f"Directory Offset: {h.directory_offset}",
            f"Palettes: {len(self._palettes)}",
            f"Color Maps: {len(self._colormaps)}",
            f"Sprites: {len(self._sprites)}",
            f"Levels: {', '.join(l.name for l in self._levels) or '-'}",
        ]
        return "\n".join(lines)
