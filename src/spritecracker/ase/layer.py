from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Self

from spritecracker.ase.header import DocumentHeader
from spritecracker.errors import MalformedChunk
from spritecracker.kernel.stream import ByteReader


class LayerType(IntEnum):
    IMAGE = 0
    GROUP = 1
    TILEMAP = 2


class LayerFlags(IntFlag):
    VISIBLE = 1
    EDITABLE = 2
    LOCK_MOVEMENT = 4
    BACKGROUND = 8
    PREFER_LINKED_CELS = 16
    COLLAPSED = 32
    REFERENCE = 64


@dataclass(frozen=True)
class LayerChunk:
    flags: LayerFlags
    type: LayerType
    child_level: int
    default_width: int
    default_height: int
    blend_mode: int
    opacity: int
    name: str
    tileset_index: int | None = None
    uuid: bytes | None = None

    @classmethod
    def decode(cls, reader: ByteReader, header: DocumentHeader) -> Self:
        flags = LayerFlags(reader.word())
        kind = reader.word()
        try:
            layer_type = LayerType(kind)
        except ValueError as exc:
            raise MalformedChunk(f'unknown layer type: {kind}') from exc
        child_level = reader.word()
        default_width = reader.word()
        default_height = reader.word()
        blend_mode = reader.word()
        opacity = reader.byte()
        reader.skip(3)
        name = reader.string()
        tileset_index = reader.dword() if layer_type == LayerType.TILEMAP else None
        uuid = bytes(reader.read(16)) if header.layers_have_uuid else None
        return cls(
            flags,
            layer_type,
            child_level,
            default_width,
            default_height,
            blend_mode,
            opacity,
            name,
            tileset_index,
            uuid,
        )

    @property
    def visible(self) -> bool:
        return bool(self.flags & LayerFlags.VISIBLE)
