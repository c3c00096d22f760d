"""Exceptions raised while loading and decoding a WAD archive."""

from typing import Optional


class WadError(Exception):
    """Base class for every WAD decoding failure."""


class WadIOError(WadError, OSError):
    """The archive file is missing, unreadable or truncated."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not read WAD {path!r}: {reason}")
        self.path = path


class MalformedHeader(WadError):
    """Header fields are inconsistent with the size of the archive."""


class MissingLump(WadError):
    """A required lump name is absent from the directory."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Lump not found: {name!r}")
        self.name = name


class OutOfBounds(WadError):
    """A read would run past the end of the buffer it was addressed in."""

    def __init__(self, offset: int, width: int, limit: int,
                 lump: Optional[str] = None) -> None:
        where = f" in lump {lump!r}" if lump else ""
        super().__init__(
            f"Read of {width} byte(s) at offset {offset}{where} exceeds "
            f"buffer length {limit}"
        )
        self.offset = offset
        self.width = width
        self.limit = limit
        self.lump = lump
