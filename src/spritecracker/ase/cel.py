from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Self

import numpy as np
from numpy.typing import NDArray

from spritecracker.ase.compress import inflate
from spritecracker.ase.header import DocumentHeader
from spritecracker.ase.tilemap import Tilemap, read_tilemap
from spritecracker.errors import EmptyCelPayload, MalformedChunk
from spritecracker.graphics.image import pixel_grid
from spritecracker.kernel.chunk import ArrayBuffer
from spritecracker.kernel.stream import ByteReader


class CelType(IntEnum):
    RAW_IMAGE = 0
    LINKED = 1
    COMPRESSED_IMAGE = 2
    COMPRESSED_TILEMAP = 3


@dataclass(frozen=True)
class ImagePayload:
    width: int
    height: int
    # (h, w) palette indices or (h, w, 4) RGBA
    pixels: NDArray[np.uint8] = field(compare=False, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImagePayload):
            return NotImplemented
        return (
            type(self) is type(other)
            and (self.width, self.height) == (other.width, other.height)
            and np.array_equal(self.pixels, other.pixels)
        )

    @staticmethod
    def unpack(data: ArrayBuffer) -> bytes:
        return bytes(data)

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        width = reader.word()
        height = reader.word()
        raw = cls.unpack(reader.rest())
        return cls(width, height, pixel_grid(raw, width, height, header.color_depth))


class RawImage(ImagePayload):
    pass


class CompressedImage(ImagePayload):
    @staticmethod
    def unpack(data: ArrayBuffer) -> bytes:
        return inflate(data)


@dataclass(frozen=True)
class LinkedCel:
    frame: int

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        return cls(reader.word())


CelPayload = RawImage | CompressedImage | LinkedCel | Tilemap

CEL_PAYLOADS: dict[CelType, Callable[[ByteReader, DocumentHeader], CelPayload]] = {
    CelType.RAW_IMAGE: RawImage.decode,
    CelType.LINKED: LinkedCel.decode,
    CelType.COMPRESSED_IMAGE: CompressedImage.decode,
    CelType.COMPRESSED_TILEMAP: read_tilemap,
}


@dataclass(frozen=True)
class CelChunk:
    layer: int
    x: int
    y: int
    opacity: int
    type: CelType
    z_index: int
    payload: CelPayload

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        layer = reader.word()
        x = reader.short()
        y = reader.short()
        opacity = reader.byte()
        kind = reader.word()
        z_index = reader.short()
        reader.skip(5)
        if not reader.remaining:
            raise EmptyCelPayload
        try:
            cel_type = CelType(kind)
        except ValueError as exc:
            raise MalformedChunk(f'unknown cel type: {kind}') from exc
        payload = CEL_PAYLOADS[cel_type](reader, header)
        return cls(layer, x, y, opacity, cel_type, z_index, payload)

    @property
    def origin(self) -> tuple[int, int]:
        return self.x, self.y

    @property
    def is_image(self) -> bool:
        return isinstance(self.payload, ImagePayload)
