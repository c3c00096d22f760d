"""
Debug image sink: ASCII PPM ("P3") writer and the palette, colormap and
sprite sheets the decoder dumps.

File layout:
    P3
    <width> <height>
    255
    one "R G B" line per pixel, row-major
"""

import logging
import os

from doomwad.defs import Sprite

logger = logging.getLogger(__name__)

BLACK = (0, 0, 0)


def format_ppm(colors, width: int, height: int) -> str:
    if len(colors) != width * height:
        raise ValueError(f"{len(colors)} colors do not fill a {width}x{height} image")
    lines = ["P3", f"{width} {height}", "255"]
    lines.extend(f"{r} {g} {b}" for r, g, b in colors)
    return "\n".join(lines) + "\n"


def write_ppm(path: str, colors, width: int, height: int) -> str:
    """Write *colors* (row-major (r, g, b) triples) as a P3 file at *path*."""
    text = format_ppm(colors, width, height)
    with open(path, "w") as f:
        f.write(text)
    logger.info("Written file %s", path)
    return path


def rasterize(sprite: Sprite) -> list:
    """
    Compose the sprite's posts into a dense ``height`` x ``width`` grid of
    palette indices; ``None`` marks transparent pixels.

    Post pixels below the declared height are clipped.
    """
    grid = [[None] * sprite.width for _ in range(sprite.height)]
    for post in sprite.posts:
        if post.column >= sprite.width:
            continue
        for i, index in enumerate(post.pixels):
            row = post.row + i
            if row >= sprite.height:
                break
            grid[row][post.column] = index
    return grid


def palette_image(palette) -> list:
    """A palette as a 16x16 swatch, index 0 at the top left."""
    return list(palette.colors)


def colormap_image(colormaps, palettes) -> list:
    """
    Every colormap seen through every palette: 256 columns, one row per
    (palette, colormap) pair, palette-major.
    """
    image = []
    for palette in palettes:
        for colormap in colormaps:
            image.extend(palette[index] for index in colormap.indices)
    return image


def sprite_image(sprite: Sprite, palettes, background=BLACK) -> list:
    """The sprite drawn once per palette, side by side."""
    grid = rasterize(sprite)
    image = []
    for row in grid:
        for palette in palettes:
            image.extend(background if index is None else palette[index] for index in row)
    return image


def write_palettes(palettes, directory: str) -> list:
    return [
        write_ppm(os.path.join(directory, f"palette{i}.ppm"), palette_image(p), 16, 16)
        for i, p in enumerate(palettes)
    ]


def write_colormaps(colormaps, palettes, directory: str) -> str:
    height = len(colormaps) * len(palettes)
    return write_ppm(
        os.path.join(directory, "colormaps.ppm"),
        colormap_image(colormaps, palettes),
        256,
        height,
    )


def write_sprite(sprite: Sprite, palettes, directory: str) -> str:
    return write_ppm(
        os.path.join(directory, f"{sprite.name}.ppm"),
        sprite_image(sprite, palettes),
        sprite.width * len(palettes),
        sprite.height,
    )
