from dataclasses import dataclass, fields
from enum import IntEnum, IntFlag
from typing import Self

import numpy as np

from spritecracker.errors import MalformedHeader
from spritecracker.kernel.chunk import ArrayBuffer, unpack_record

HEADER_SIZE = 128
FRAME_HEADER_SIZE = 16

HEADER_MAGIC = 0xA5E0
FRAME_MAGIC = 0xF1FA

# old chunk count value telling to read the new 32-bit field instead
USE_NEW_CHUNK_COUNT = 0xFFFF

DEFAULT_GRID_SIZE = 16


class ColorDepth(IntEnum):
    INDEXED = 8
    GRAYSCALE = 16
    RGBA = 32

    @property
    def bytes_per_pixel(self) -> int:
        return self.value // 8


class HeaderFlags(IntFlag):
    LAYER_OPACITY_VALID = 1
    GROUP_OPACITY_VALID = 2
    LAYER_UUID = 4


HEADER_DTYPE = np.dtype(
    [
        ('file_size', '<u4'),
        ('magic', '<u2'),
        ('frames', '<u2'),
        ('width', '<u2'),
        ('height', '<u2'),
        ('color_depth', '<u2'),
        ('flags', '<u4'),
        ('speed', '<u2'),  # deprecated, frames carry their own duration
        ('reserved1', '<u4'),
        ('reserved2', '<u4'),
        ('transparent_index', 'u1'),
        ('ignored', 'V3'),
        ('num_colors', '<u2'),
        ('pixel_width', 'u1'),
        ('pixel_height', 'u1'),
        ('grid_x', '<i2'),
        ('grid_y', '<i2'),
        ('grid_width', '<u2'),
        ('grid_height', '<u2'),
        ('future', 'V84'),
    ],
)

FRAME_HEADER_DTYPE = np.dtype(
    [
        ('size', '<u4'),
        ('magic', '<u2'),
        ('old_chunks', '<u2'),
        ('duration', '<u2'),
        ('reserved', 'V2'),
        ('new_chunks', '<u4'),
    ],
)

assert HEADER_DTYPE.itemsize == HEADER_SIZE
assert FRAME_HEADER_DTYPE.itemsize == FRAME_HEADER_SIZE


def _from_record(cls: type, record: np.void) -> dict[str, int]:
    return {field.name: int(record[field.name]) for field in fields(cls)}


@dataclass(frozen=True)
class DocumentHeader:
    file_size: int
    magic: int
    frames: int
    width: int
    height: int
    color_depth: int
    flags: int
    speed: int
    transparent_index: int
    num_colors: int
    pixel_width: int
    pixel_height: int
    grid_x: int
    grid_y: int
    grid_width: int
    grid_height: int

    @classmethod
    def from_buffer(cls, buffer: ArrayBuffer, offset: int = 0) -> Self:
        if len(buffer) - offset < HEADER_SIZE:
            raise MalformedHeader(
                f'expected {HEADER_SIZE} header bytes, got {len(buffer) - offset}'
            )
        header = cls(**_from_record(cls, unpack_record(HEADER_DTYPE, buffer, offset)))
        if header.magic != HEADER_MAGIC:
            raise MalformedHeader(
                f'incorrect magic number, expected {HEADER_MAGIC:x},'
                f' got {header.magic:x}'
            )
        if header.color_depth not in set(ColorDepth):
            raise MalformedHeader(f'unknown color depth: {header.color_depth}')
        return header

    @property
    def depth(self) -> ColorDepth:
        return ColorDepth(self.color_depth)

    @property
    def colors(self) -> int:
        return self.num_colors or 256

    @property
    def layer_opacity_valid(self) -> bool:
        return bool(self.flags & HeaderFlags.LAYER_OPACITY_VALID)

    @property
    def layers_have_uuid(self) -> bool:
        return bool(self.flags & HeaderFlags.LAYER_UUID)

    @property
    def pixel_ratio(self) -> tuple[int, int]:
        if not self.pixel_width or not self.pixel_height:
            return 1, 1
        return self.pixel_width, self.pixel_height

    @property
    def grid_size(self) -> tuple[int, int]:
        return (
            self.grid_width or DEFAULT_GRID_SIZE,
            self.grid_height or DEFAULT_GRID_SIZE,
        )


@dataclass(frozen=True)
class FrameHeader:
    size: int
    magic: int
    old_chunks: int
    duration: int
    new_chunks: int

    @classmethod
    def from_buffer(cls, buffer: ArrayBuffer, offset: int = 0) -> Self:
        if len(buffer) - offset < FRAME_HEADER_SIZE:
            raise MalformedHeader(
                f'expected {FRAME_HEADER_SIZE} frame header bytes,'
                f' got {max(len(buffer) - offset, 0)}'
            )
        record = unpack_record(FRAME_HEADER_DTYPE, buffer, offset)
        header = cls(**_from_record(cls, record))
        if header.magic != FRAME_MAGIC:
            raise MalformedHeader(
                f'incorrect frame magic number, expected {FRAME_MAGIC:x},'
                f' got {header.magic:x}'
            )
        return header

    @property
    def chunk_count(self) -> int:
        if self.old_chunks == USE_NEW_CHUNK_COUNT:
            return self.new_chunks
        if self.new_chunks == 0:
            return self.old_chunks
        return self.new_chunks
