from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Self

import numpy as np
from numpy.typing import NDArray

from spritecracker.ase.compress import inflate
from spritecracker.ase.header import DocumentHeader
from spritecracker.errors import TileCountMismatch
from spritecracker.kernel.stream import ByteReader

WORD_DTYPES = {8: '<u1', 16: '<u2', 32: '<u4'}


def trailing_zeros(mask: int) -> int:
    if not mask:
        return 0
    return (mask & -mask).bit_length() - 1


@dataclass(frozen=True)
class TileMasks:
    """Bit layout of the packed tile words, as declared by the document."""

    tile_id: int
    x_flip: int
    y_flip: int
    diagonal_flip: int

    @classmethod
    def decode(cls, reader: ByteReader) -> Self:
        return cls(reader.dword(), reader.dword(), reader.dword(), reader.dword())

    @property
    def id_shift(self) -> int:
        return trailing_zeros(self.tile_id)

    @property
    def legacy_empty_id(self) -> int:
        return self.tile_id >> self.id_shift

    def tile_ids(self, words: NDArray[np.uint32]) -> NDArray[np.uint32]:
        return (words & np.uint32(self.tile_id)) >> np.uint32(self.id_shift)

    def flags(self, words: NDArray[np.uint32], mask: int) -> NDArray[np.bool_]:
        return (words & np.uint32(mask)) != 0


@dataclass(frozen=True)
class Tile:
    tile_id: int
    x_flip: bool = False
    y_flip: bool = False
    diagonal_flip: bool = False
    empty: bool = False
    # borrowed from the tileset, (th, tw, 4) RGBA
    image: NDArray[np.uint8] | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Tilemap:
    width: int
    height: int
    bits_per_tile: int
    masks: TileMasks
    tiles: tuple[Tile, ...]

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self) -> Iterator[Tile]:
        return iter(self.tiles)

    def __getitem__(self, pos: tuple[int, int]) -> Tile:
        row, col = pos
        if not (0 <= row < self.height and 0 <= col < self.width):
            raise IndexError(pos)
        return self.tiles[row * self.width + col]

    def rows(self) -> Iterator[tuple[Tile, ...]]:
        for row in range(self.height):
            yield self.tiles[row * self.width : (row + 1) * self.width]

    @property
    def tile_ids(self) -> NDArray[np.uint32]:
        ids = np.fromiter((tile.tile_id for tile in self.tiles), dtype=np.uint32)
        return ids.reshape(self.height, self.width)


def unpack_words(raw: bytes, bits_per_tile: int, count: int) -> NDArray[np.uint32]:
    dtype = WORD_DTYPES.get(bits_per_tile)
    if dtype is None:
        raise TileCountMismatch(f'unsupported tile word size: {bits_per_tile} bits')
    itemsize = bits_per_tile // 8
    if len(raw) % itemsize or len(raw) // itemsize != count:
        raise TileCountMismatch(
            f'expected {count} tiles of {itemsize} bytes, got {len(raw)} bytes'
        )
    return np.frombuffer(raw, dtype=dtype).astype(np.uint32)


def read_tilemap(reader: ByteReader, header: DocumentHeader) -> Tilemap:
    width = reader.word()
    height = reader.word()
    bits_per_tile = reader.word()
    masks = TileMasks.decode(reader)
    reader.skip(10)
    words = unpack_words(inflate(reader.rest()), bits_per_tile, width * height)

    ids = masks.tile_ids(words)
    xflip = masks.flags(words, masks.x_flip)
    yflip = masks.flags(words, masks.y_flip)
    dflip = masks.flags(words, masks.diagonal_flip)
    tiles = tuple(
        Tile(int(tid), bool(x), bool(y), bool(d))
        for tid, x, y, d in zip(ids, xflip, yflip, dflip, strict=True)
    )
    return Tilemap(width, height, bits_per_tile, masks, tiles)
