"""Entry point for `python -m doomwad [wad_path]`.

Usage:
    python -m doomwad
    python -m doomwad /path/to/doom1.wad --out debug/ --sprites '*'

The default WAD path comes from DOOMWAD_PATH (or doom1.wad).
"""
import argparse
import logging
import sys

from rich.logging import RichHandler

from doomwad.config import console, load_settings, parse_sprites, LOOKUP_CHOICES
from doomwad.errors import WadError
from doomwad.perf import perf
from doomwad.wad import WAD


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="doomwad",
        description="Decode palettes, colormaps, sprites and levels from a DOOM WAD",
    )
    parser.add_argument("wad", nargs="?", help="WAD file (default: $DOOMWAD_PATH or doom1.wad)")
    parser.add_argument("--out", help="Write debug PPM images into this directory")
    parser.add_argument("--sprites", type=parse_sprites,
                        help="Comma-separated sprite lump names, or '*' for all")
    parser.add_argument("--lookup", choices=LOOKUP_CHOICES,
                        help="Which entry a duplicated lump name resolves to")
    parser.add_argument("--perf-log", metavar="DIR", help="Save decode timings as JSONL into DIR")
    parser.add_argument("--strict", action="store_true",
                        help="Stop at the first decode failure")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )

    wad_path = args.wad or settings.wad_path
    perf.start()
    perf.stage("decode")
    try:
        wad = WAD(
            wad_path,
            sprites=args.sprites or settings.sprites,
            lookup=args.lookup or settings.lookup,
            strict=args.strict,
        )
    except WadError as e:
        perf.finish()
        console.print(f"[red]Error:[/red] {e}")
        return 1

    console.print(str(wad))
    for operation, error in wad.errors:
        console.print(f"[yellow]{operation}:[/yellow] {error}")

    output_dir = args.out or settings.output_dir
    if output_dir:
        perf.stage("dump")
        wad.write_debug_images(output_dir)
    perf.finish()

    perf.summary()
    if args.perf_log:
        perf.save(args.perf_log)
    return 0


if __name__ == "__main__":
    sys.exit(main())
