from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Self

import numpy as np
from numpy.typing import NDArray

from spritecracker.ase.header import DocumentHeader
from spritecracker.errors import PaletteIndexOutOfRange
from spritecracker.kernel.stream import ByteReader

RGB = tuple[int, int, int]
RGBA = tuple[int, int, int, int]

# color count of 0 in a packet stands for a full run
FULL_RUN = 256


def rgb_to_rgba(color: RGB) -> RGBA:
    # the 24-bit encoding has no alpha, pure black marks transparency
    return (*color, 0 if color == (0, 0, 0) else 255)


@dataclass(frozen=True)
class Packet:
    skip: int
    colors: tuple[RGB, ...]


@dataclass(frozen=True)
class OldPaletteChunk:
    packets: tuple[Packet, ...]

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        packets = []
        for _ in range(reader.word()):
            skip = reader.byte()
            count = reader.byte() or FULL_RUN
            colors = tuple(
                (reader.byte(), reader.byte(), reader.byte()) for _ in range(count)
            )
            packets.append(Packet(skip, colors))
        return cls(tuple(packets))

    def entries(self) -> Iterator[tuple[int, RGBA]]:
        index = 0
        for packet in self.packets:
            index += packet.skip
            for color in packet.colors:
                yield index, rgb_to_rgba(color)
                index += 1


@dataclass(frozen=True)
class PaletteEntry:
    flags: int
    color: RGBA
    name: str | None = None


@dataclass(frozen=True)
class PaletteChunk:
    """Palette size change record.

    Parsed so documents carrying it decode cleanly, the assembled palette is
    built from the old palette packets only.
    """

    size: int
    first: int
    last: int
    entries: tuple[PaletteEntry, ...]

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        size = reader.dword()
        first = reader.dword()
        last = reader.dword()
        reader.skip(8)
        entries = []
        for _ in range(first, last + 1):
            flags = reader.word()
            color = (reader.byte(), reader.byte(), reader.byte(), reader.byte())
            name = reader.string() if flags & 1 else None
            entries.append(PaletteEntry(flags, color, name))
        return cls(size, first, last, tuple(entries))


class Palette:
    __slots__ = ('colors',)

    def __init__(self, colors: NDArray[np.uint8] | None = None) -> None:
        self.colors = (
            np.zeros((0, 4), dtype=np.uint8) if colors is None else colors
        )

    @classmethod
    def from_chunks(cls, chunks: Iterable[OldPaletteChunk]) -> Self:
        palette = cls()
        for chunk in chunks:
            palette.apply(chunk.entries())
        return palette

    def apply(self, entries: Iterable[tuple[int, RGBA]]) -> None:
        entries = list(entries)
        size = max((index + 1 for index, _ in entries), default=0)
        if size > len(self.colors):
            # entries skipped over stay (0, 0, 0, 0)
            grown = np.zeros((size, 4), dtype=np.uint8)
            grown[: len(self.colors)] = self.colors
            self.colors = grown
        for index, color in entries:
            self.colors[index] = color

    def __len__(self) -> int:
        return len(self.colors)

    def __getitem__(self, index: int) -> RGBA:
        if not 0 <= index < len(self.colors):
            raise PaletteIndexOutOfRange(index, len(self.colors))
        r, g, b, a = (int(channel) for channel in self.colors[index])
        return r, g, b, a

    def __iter__(self) -> Iterator[RGBA]:
        for index in range(len(self)):
            yield self[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Palette):
            return NotImplemented
        return np.array_equal(self.colors, other.colors)

    def __repr__(self) -> str:
        return f'Palette[{len(self)}]'

    def resolve(self, indices: NDArray[np.uint8]) -> NDArray[np.uint8]:
        """Map a grid of palette indices to an RGBA grid of the same shape."""
        if indices.size and int(indices.max()) >= len(self.colors):
            raise PaletteIndexOutOfRange(int(indices.max()), len(self.colors))
        return self.colors[indices]
