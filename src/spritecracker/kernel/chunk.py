from abc import ABC
from collections.abc import Iterator
from dataclasses import dataclass
from typing import ClassVar, Protocol, Self, TypedDict, cast

import numpy as np
from numpy.typing import NDArray

from spritecracker.errors import AseError, TruncatedChunk

ArrayBuffer = NDArray[np.uint8] | memoryview | bytes


class HeaderDType(Protocol):
    itemsize: ClassVar[int]


class ChunkHeaderDict(TypedDict):
    size: int
    type: int


class StructuredTuple(ABC):
    __slots__ = ('_header',)
    dtype: ClassVar[type[HeaderDType]]

    def __init__(self, header: HeaderDType) -> None:
        self._header = header

    @classmethod
    def itemsize(cls) -> int:
        return cls.dtype.itemsize

    @classmethod
    def from_buffer(cls, buffer: ArrayBuffer, offset: int = 0) -> Self:
        header = unpack_record(cast(np.dtype, cls.dtype), buffer, offset)
        return cls(cast(HeaderDType, header))


class ChunkHeader(StructuredTuple):
    dtype = cast(
        type[HeaderDType],
        np.dtype(
            [
                ('size', '<u4'),  # size including this header
                ('type', '<u2'),
            ],
        ),
    )

    @property
    def size(self) -> int:
        return int(cast(ChunkHeaderDict, self._header)['size'])

    @property
    def type(self) -> int:
        return int(cast(ChunkHeaderDict, self._header)['type'])


@dataclass(frozen=True)
class ChunkSettings:
    header_dtype: type[ChunkHeader]
    inclheader: bool = True


@dataclass(frozen=True, slots=True)
class Chunk:
    header: ChunkHeader
    data: ArrayBuffer

    @property
    def type(self) -> int:
        return self.header.type

    @property
    def size(self) -> int:
        return self.header.size

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f'Chunk<0x{self.type:04x}>[{len(self)}]'


def unpack_record(dtype: np.dtype, buffer: ArrayBuffer, offset: int = 0) -> np.void:
    available = len(buffer) - offset
    if available < dtype.itemsize:
        raise TruncatedChunk(dtype.itemsize, max(available, 0))
    return np.frombuffer(buffer, dtype=dtype, count=1, offset=offset)[0]


def read_chunk_header(
    cfg: ChunkSettings,
    buffer: ArrayBuffer,
    offset: int = 0,
) -> tuple[int, ChunkHeader]:
    chunk_header = cfg.header_dtype.from_buffer(buffer, offset)
    return offset + cfg.header_dtype.itemsize(), chunk_header


def nslice(buffer: ArrayBuffer, start: int, end: int) -> ArrayBuffer:
    res = buffer[start:end]
    if len(res) != end - start:
        raise TruncatedChunk(end - start, len(res))
    return res


def untag(
    cfg: ChunkSettings,
    buffer: ArrayBuffer,
    offset: int = 0,
) -> tuple[int, Chunk]:
    start = offset
    offset, chunk_header = read_chunk_header(cfg, buffer, offset)

    end = start + chunk_header.size if cfg.inclheader else offset + chunk_header.size
    if end < offset:
        # declared size cannot even cover the header
        raise TruncatedChunk(cfg.header_dtype.itemsize(), chunk_header.size)
    chunk_data = nslice(buffer, offset, end)
    return end, Chunk(chunk_header, chunk_data)


def read_chunks(
    cfg: ChunkSettings,
    buffer: ArrayBuffer,
    count: int,
    offset: int = 0,
) -> Iterator[tuple[int, Chunk]]:
    for _ in range(count):
        try:
            noffset, chunk = untag(cfg, buffer, offset)
        except AseError as exc:
            exc.attach(offset=offset)
            raise
        yield offset, chunk
        offset = noffset
