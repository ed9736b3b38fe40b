from dataclasses import dataclass
from enum import IntEnum
from typing import Self

from spritecracker.ase.header import DocumentHeader
from spritecracker.errors import MalformedChunk
from spritecracker.kernel.stream import ByteReader


class LoopDirection(IntEnum):
    FORWARD = 0
    REVERSE = 1
    PING_PONG = 2
    PING_PONG_REVERSE = 3


@dataclass(frozen=True)
class Tag:
    start: int
    stop: int
    direction: LoopDirection
    repeat: int  # 0 loops forever
    color: tuple[int, int, int]
    name: str

    @classmethod
    def decode(cls, reader: ByteReader) -> Self:
        start = reader.word()
        stop = reader.word()
        value = reader.byte()
        try:
            direction = LoopDirection(value)
        except ValueError as exc:
            raise MalformedChunk(f'unknown loop direction: {value}') from exc
        repeat = reader.word()
        reader.skip(6)
        color = (reader.byte(), reader.byte(), reader.byte())
        reader.skip(1)
        return cls(start, stop, direction, repeat, color, reader.string())


@dataclass(frozen=True)
class TagsChunk:
    tags: tuple[Tag, ...]

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        count = reader.word()
        reader.skip(8)
        return cls(tuple(Tag.decode(reader) for _ in range(count)))
