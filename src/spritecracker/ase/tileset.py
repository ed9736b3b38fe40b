from dataclasses import dataclass, field
from enum import IntFlag
from typing import Self

import numpy as np
from numpy.typing import NDArray

from spritecracker.ase.compress import inflate
from spritecracker.ase.header import DocumentHeader
from spritecracker.errors import TilesetSizeMismatch
from spritecracker.graphics.image import tile_grids
from spritecracker.kernel.stream import ByteReader


class TilesetFlags(IntFlag):
    EXTERNAL_LINK = 1
    EMBEDDED = 2
    EMPTY_TILE_ZERO = 4
    MATCH_X_FLIP = 8
    MATCH_Y_FLIP = 16
    MATCH_DIAGONAL_FLIP = 32


@dataclass(frozen=True)
class ExternalLink:
    file_id: int
    tileset_id: int


@dataclass(frozen=True)
class TilesetChunk:
    id: int
    flags: TilesetFlags
    count: int
    tile_width: int
    tile_height: int
    base_index: int
    name: str
    external: ExternalLink | None = None
    # (count, th, tw) palette indices or (count, th, tw, 4) RGBA
    pixels: NDArray[np.uint8] | None = field(default=None, compare=False, repr=False)

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        tileset_id = reader.dword()
        flags = TilesetFlags(reader.dword())
        count = reader.dword()
        tile_width = reader.word()
        tile_height = reader.word()
        base_index = reader.short()
        reader.skip(14)
        name = reader.string()

        external = None
        if flags & TilesetFlags.EXTERNAL_LINK:
            external = ExternalLink(reader.dword(), reader.dword())

        pixels = None
        if flags & TilesetFlags.EMBEDDED:
            length = reader.dword()
            raw = inflate(reader.read(length))
            pixels = tile_grids(raw, tile_width, tile_height, header.color_depth)
            if len(pixels) != count:
                raise TilesetSizeMismatch(
                    f'tileset {tileset_id} declares {count} tiles,'
                    f' data holds {len(pixels)}'
                )

        return cls(
            tileset_id,
            flags,
            count,
            tile_width,
            tile_height,
            base_index,
            name,
            external,
            pixels,
        )

    @property
    def embedded(self) -> bool:
        return self.pixels is not None

    @property
    def empty_tile_zero(self) -> bool:
        return bool(self.flags & TilesetFlags.EMPTY_TILE_ZERO)
