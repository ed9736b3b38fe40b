from collections.abc import Iterable, Sequence

import numpy as np
from PIL import Image

from spritecracker.graphics.image import (
    Box,
    Origin,
    Pixels,
    TImage,
    convert_to_pil_image,
)

TRANSPARENT = (0, 0, 0, 0)


def new_canvas(width: int, height: int) -> TImage:
    return Image.new('RGBA', (width, height), TRANSPARENT)


def clip_box(
    origin: Origin,
    size: tuple[int, int],
    bounds: tuple[int, int],
) -> Box | None:
    x, y = origin
    w, h = size
    x1, y1 = max(x, 0), max(y, 0)
    x2, y2 = min(x + w, bounds[0]), min(y + h, bounds[1])
    if x1 >= x2 or y1 >= y2:
        return None
    return x1, y1, x2, y2


def apply_opacity(pixels: Pixels, opacity: int) -> Pixels:
    if opacity >= 255:
        return pixels
    res = pixels.copy()
    alpha = res[..., 3].astype(np.uint16) * opacity
    res[..., 3] = ((alpha + 127) // 255).astype(np.uint8)
    return res


def paste_cel(
    canvas: TImage,
    pixels: Pixels,
    origin: Origin,
    opacity: int = 255,
) -> None:
    height, width = pixels.shape[:2]
    box = clip_box(origin, (width, height), canvas.size)
    if box is None:
        return
    x, y = origin
    x1, y1, x2, y2 = box
    visible = apply_opacity(pixels[y1 - y : y2 - y, x1 - x : x2 - x], opacity)
    canvas.alpha_composite(convert_to_pil_image(visible), dest=(x1, y1))


def compose_frame(
    width: int,
    height: int,
    cels: Iterable[tuple[Origin, Pixels, int]],
) -> Pixels:
    canvas = new_canvas(width, height)
    for origin, pixels, opacity in cels:
        paste_cel(canvas, pixels, origin, opacity)
    return np.array(canvas, dtype=np.uint8)


def render_tiles(
    tiles: Sequence[Pixels | None],
    columns: int,
    tile_size: tuple[int, int],
) -> Pixels:
    tile_width, tile_height = tile_size
    rows = len(tiles) // columns if columns else 0
    canvas = np.zeros((rows * tile_height, columns * tile_width, 4), dtype=np.uint8)
    for idx, tile in enumerate(tiles):
        if tile is None:
            continue
        row, col = divmod(idx, columns)
        y, x = row * tile_height, col * tile_width
        canvas[y : y + tile_height, x : x + tile_width] = tile
    return canvas
