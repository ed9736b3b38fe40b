from collections import Counter
from collections.abc import Callable, Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import Any

from spritecracker.errors import AseError
from spritecracker.kernel.chunk import (
    ArrayBuffer,
    Chunk,
    ChunkSettings,
    read_chunks,
)


class Element:
    __slots__ = ('chunk', 'attribs', 'value')

    def __init__(
        self,
        chunk: Chunk,
        attribs: dict[str, Any] | None = None,
        value: Any = None,
    ) -> None:
        self.chunk = chunk
        self.attribs = attribs or {}
        self.value = value

    @property
    def type(self) -> int:
        return self.chunk.type

    @property
    def data(self) -> ArrayBuffer:
        return self.chunk.data

    def __repr__(self) -> str:
        attribs = ' '.join(f'{key}={val}' for key, val in self.attribs.items())
        value = type(self.value).__name__ if self.value is not None else None
        return f'Element<0x{self.type:04x}>[{attribs}, value={value}]'


def format_types(root: Iterable[Element], max_show: int | None = None) -> Iterator[str]:
    counts = Counter(f'0x{elem.type:04x}' for elem in root)
    for idx, (tag, count) in enumerate(counts.items()):
        if not (max_show is None or idx < max_show):
            yield '...'
            return
        yield f'{tag}*{count}' if count > 1 else tag


@contextmanager
def error_context(**context: Any) -> Iterator[None]:
    try:
        yield
    except AseError as exc:
        exc.attach(**context)
        raise


ExtraFunc = Callable[[Chunk, int], dict[str, Any]]
DecodeFunc = Callable[[Chunk, int], Any]


@dataclass(frozen=True)
class IndexerSettings(ChunkSettings):
    extra: ExtraFunc | None = None


def map_chunks(
    cfg: IndexerSettings,
    buffer: ArrayBuffer,
    count: int,
    *,
    offset: int = 0,
) -> Iterator[Element]:
    for idx, (coffset, chunk) in enumerate(read_chunks(cfg, buffer, count, offset)):
        yield Element(
            chunk,
            {
                'index': idx,
                'offset': coffset,
                'size': chunk.size,
                **(cfg.extra(chunk, coffset) if cfg.extra else {}),
            },
        )


def element_context(elem: Element) -> AbstractContextManager[None]:
    return error_context(chunk_type=elem.type, offset=elem.attribs['offset'])


def decode_elements(elems: Iterable[Element], decode: DecodeFunc) -> None:
    for elem in elems:
        with element_context(elem):
            elem.value = decode(elem.chunk, elem.attribs['offset'])
