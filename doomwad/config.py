"""Shared console and environment-driven settings."""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from rich.console import Console

from doomwad.defs import DEFAULT_SPRITES

console = Console()

LOOKUP_CHOICES = ("first", "last")


@dataclass(frozen=True)
class Settings:
    wad_path: str = "doom1.wad"
    output_dir: str | None = None
    sprites: tuple | str = DEFAULT_SPRITES
    lookup: str = "last"
    log_level: str = "INFO"


def parse_sprites(value: str) -> tuple | str:
    """Parse a comma list of sprite names; ``*`` selects every sprite lump."""
    value = value.strip()
    if value == "*":
        return "*"
    names = tuple(n.strip().upper() for n in value.split(",") if n.strip())
    if not names:
        raise ValueError("DOOMWAD_SPRITES names no sprites")
    return names


def load_settings() -> Settings:
    """Read DOOMWAD_* variables from the environment (and a .env file, if present)."""
    load_dotenv()

    lookup = os.environ.get("DOOMWAD_LUMP_LOOKUP", "last").strip().lower()
    if lookup not in LOOKUP_CHOICES:
        raise ValueError(f"DOOMWAD_LUMP_LOOKUP must be 'first' or 'last', not {lookup!r}")

    log_level = os.environ.get("DOOMWAD_LOG_LEVEL", "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"DOOMWAD_LOG_LEVEL is not a logging level: {log_level!r}")

    sprites = os.environ.get("DOOMWAD_SPRITES")
    return Settings(
        wad_path=os.environ.get("DOOMWAD_PATH", "doom1.wad"),
        output_dir=os.environ.get("DOOMWAD_OUTPUT_DIR") or None,
        sprites=parse_sprites(sprites) if sprites else DEFAULT_SPRITES,
        lookup=lookup,
        log_level=log_level,
    )
