from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from spritecracker.ase.cel import CelChunk
from spritecracker.ase.header import DocumentHeader
from spritecracker.ase.layer import LayerChunk
from spritecracker.ase.palette import OldPaletteChunk, PaletteChunk
from spritecracker.ase.profile import ColorProfile
from spritecracker.ase.schema import ChunkType, describe
from spritecracker.ase.tags import TagsChunk
from spritecracker.ase.tileset import TilesetChunk
from spritecracker.kernel.chunk import Chunk
from spritecracker.kernel.preset import DecoderSettings, get_logger
from spritecracker.kernel.stream import ByteReader

ChunkDecoder = Callable[[ByteReader, DocumentHeader], Any]

DECODERS: dict[int, ChunkDecoder] = {
    ChunkType.OLD_PALETTE: OldPaletteChunk.decode,
    ChunkType.LAYER: LayerChunk.decode,
    ChunkType.CEL: CelChunk.decode,
    ChunkType.COLOR_PROFILE: ColorProfile.decode,
    ChunkType.TAGS: TagsChunk.decode,
    ChunkType.PALETTE: PaletteChunk.decode,
    ChunkType.TILESET: TilesetChunk.decode,
}


@dataclass(frozen=True)
class OpaqueChunk:
    type: int
    data: bytes

    def __repr__(self) -> str:
        return f'OpaqueChunk<{describe(self.type)}>[{len(self.data)}]'


def decode_chunk(
    cfg: DecoderSettings,
    header: DocumentHeader,
    chunk: Chunk,
    offset: int = 0,
) -> Any:
    decoder = DECODERS.get(chunk.type)
    if decoder is None:
        get_logger(cfg).debug(
            'skipping chunk %s of %d bytes at offset 0x%x',
            describe(chunk.type),
            len(chunk),
            offset,
        )
        return OpaqueChunk(chunk.type, bytes(chunk.data))
    base = offset + cfg.header_dtype.itemsize()
    return decoder(ByteReader(chunk.data, base), header)
