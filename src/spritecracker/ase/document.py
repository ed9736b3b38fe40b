import os
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from spritecracker.ase.chunks import decode_chunk
from spritecracker.ase.header import (
    FRAME_HEADER_SIZE,
    HEADER_SIZE,
    DocumentHeader,
    FrameHeader,
)
from spritecracker.ase.preset import ase
from spritecracker.errors import FrameSizeMismatch
from spritecracker.kernel.chunk import ArrayBuffer, Chunk
from spritecracker.kernel.element import (
    Element,
    decode_elements,
    error_context,
    format_types,
)
from spritecracker.kernel.fileio import ResourceFile
from spritecracker.kernel.preset import Preset, get_logger

T = TypeVar('T')


@dataclass(frozen=True)
class Frame:
    index: int
    offset: int
    header: FrameHeader
    chunks: tuple[Element, ...]

    @property
    def duration(self) -> int:
        return self.header.duration

    def elements(self, kind: type) -> Iterator[Element]:
        for elem in self.chunks:
            if isinstance(elem.value, kind):
                yield elem

    def findall(self, kind: type[T]) -> Iterator[T]:
        for elem in self.elements(kind):
            yield elem.value


@dataclass(frozen=True)
class Document:
    header: DocumentHeader
    frames: tuple[Frame, ...]
    trailing: int = 0

    def __len__(self) -> int:
        return len(self.frames)

    def elements(self, kind: type) -> Iterator[tuple[Frame, Element]]:
        for frame in self.frames:
            for elem in frame.elements(kind):
                yield frame, elem

    def findall(self, kind: type[T]) -> Iterator[tuple[Frame, T]]:
        for frame in self.frames:
            for value in frame.findall(kind):
                yield frame, value


def verify_frame_size(header: FrameHeader, chunks: list[Element]) -> None:
    computed = FRAME_HEADER_SIZE + sum(elem.chunk.size for elem in chunks)
    if computed != header.size:
        raise FrameSizeMismatch(header.size, computed)


def read_frame(
    cfg: Preset,
    header: DocumentHeader,
    buffer: ArrayBuffer,
    offset: int,
    index: int,
) -> Frame:
    frame_header = FrameHeader.from_buffer(buffer, offset)

    def set_frame_id(chunk: Chunk, coffset: int) -> dict[str, Any]:
        return {'frame': index}

    chunks = list(
        cfg(extra=set_frame_id).map_chunks(
            buffer,
            frame_header.chunk_count,
            offset=offset + FRAME_HEADER_SIZE,
        )
    )
    verify_frame_size(frame_header, chunks)
    get_logger(cfg).debug(
        'frame %d at 0x%x: %s',
        index,
        offset,
        ', '.join(format_types(chunks, max_show=8)),
    )

    # sizes are trusted from here on, payloads can be decoded
    decode_elements(
        chunks,
        lambda chunk, coffset: decode_chunk(cfg, header, chunk, coffset),
    )
    return Frame(index, offset, frame_header, tuple(chunks))


def parse(buffer: ArrayBuffer, cfg: Preset = ase) -> Document:
    header = DocumentHeader.from_buffer(buffer)

    offset = HEADER_SIZE
    frames = []
    for index in range(header.frames):
        with error_context(frame=index, offset=offset):
            frame = read_frame(cfg, header, buffer, offset, index)
        frames.append(frame)
        offset += frame.header.size

    trailing = max(len(buffer) - offset, 0)
    if trailing:
        get_logger(cfg).warning(
            'found %d trailing bytes after the last frame at offset 0x%x',
            trailing,
            offset,
        )
    return Document(header, tuple(frames), trailing)


def from_bytes(resource: ArrayBuffer, cfg: Preset = ase) -> Document:
    return parse(resource, cfg)


def from_path(path: str | os.PathLike[str], cfg: Preset = ase) -> Document:
    with ResourceFile.load(path) as res:
        return from_bytes(res, cfg)
