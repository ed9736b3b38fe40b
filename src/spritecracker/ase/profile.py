from dataclasses import dataclass
from enum import IntEnum
from typing import Self

from spritecracker.ase.header import DocumentHeader
from spritecracker.errors import MalformedChunk
from spritecracker.kernel.stream import ByteReader

FIXED_GAMMA = 1


class ColorProfileType(IntEnum):
    NONE = 0
    SRGB = 1
    ICC = 2


@dataclass(frozen=True)
class ColorProfile:
    type: ColorProfileType
    flags: int
    gamma: float | None = None
    icc: bytes | None = None

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        kind = reader.word()
        try:
            profile_type = ColorProfileType(kind)
        except ValueError as exc:
            raise MalformedChunk(f'unknown color profile type: {kind}') from exc
        flags = reader.word()
        gamma = reader.fixed()
        reader.skip(8)
        icc = None
        if profile_type == ColorProfileType.ICC:
            icc = bytes(reader.read(reader.dword()))
        return cls(profile_type, flags, gamma if flags & FIXED_GAMMA else None, icc)
