from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from spritecracker.ase.header import ColorDepth
from spritecracker.errors import (
    ImageSizeMismatch,
    TilesetSizeMismatch,
    UnsupportedColorDepth,
)
from spritecracker.kernel.chunk import ArrayBuffer

Origin = tuple[int, int]
Box = tuple[int, int, int, int]
Matrix = Sequence[Sequence[int]]
Pixels = NDArray[np.uint8]

TImage = Image.Image


def bytes_per_pixel(depth: int) -> int:
    # grayscale is recognized by the header but has no pixel mapping
    if depth == ColorDepth.GRAYSCALE or depth not in set(ColorDepth):
        raise UnsupportedColorDepth(depth)
    return ColorDepth(depth).bytes_per_pixel


def _pixel_shape(depth: int, *dims: int) -> tuple[int, ...]:
    bpp = bytes_per_pixel(depth)
    return dims if bpp == 1 else (*dims, bpp)


def pixel_grid(raw: ArrayBuffer, width: int, height: int, depth: int) -> Pixels:
    """Slice a flat pixel buffer into a row-major grid.

    Indexed images come out as ``(height, width)`` palette indices, RGBA
    images as ``(height, width, 4)``.
    """
    shape = _pixel_shape(depth, height, width)
    expected = int(np.prod(shape))
    if len(raw) != expected:
        raise ImageSizeMismatch(
            f'{width}x{height} image at {depth}bpp needs {expected} bytes,'
            f' got {len(raw)}'
        )
    return np.frombuffer(raw, dtype=np.uint8).reshape(shape).copy()


def tile_grids(
    raw: ArrayBuffer,
    tile_width: int,
    tile_height: int,
    depth: int,
) -> Pixels:
    tile_shape = _pixel_shape(depth, tile_height, tile_width)
    tile_size = int(np.prod(tile_shape))
    if not tile_size:
        raise TilesetSizeMismatch(f'tiles of {tile_width}x{tile_height} have no area')
    if len(raw) % tile_size:
        raise TilesetSizeMismatch(
            f'{len(raw)} bytes of tile data is not a multiple of {tile_size}'
        )
    count = len(raw) // tile_size
    return np.frombuffer(raw, dtype=np.uint8).reshape((count, *tile_shape)).copy()


def convert_to_pil_image(
    char: Pixels | Matrix,
    palette: Pixels | None = None,
) -> TImage:
    npp = np.ascontiguousarray(np.asarray(char, dtype=np.uint8))
    if npp.ndim == 3:
        return Image.fromarray(npp)
    height, width = npp.shape
    im = Image.frombytes('P', (width, height), npp.tobytes())
    if palette is not None:
        im.putpalette(np.ascontiguousarray(palette).tobytes(), rawmode='RGBA')
    return im


def orient_tile(
    pixels: Pixels,
    x_flip: bool = False,
    y_flip: bool = False,
    diagonal_flip: bool = False,
) -> Pixels:
    # diagonal flip swaps rows and columns, only square tiles can carry it
    if diagonal_flip and pixels.shape[0] == pixels.shape[1]:
        pixels = pixels.swapaxes(0, 1)
    if x_flip:
        pixels = pixels[:, ::-1]
    if y_flip:
        pixels = pixels[::-1]
    return np.ascontiguousarray(pixels)
