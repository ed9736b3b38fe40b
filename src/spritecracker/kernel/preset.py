import logging
from dataclasses import dataclass, replace
from typing import Any, Self

from spritecracker.kernel.chunk import ChunkHeader
from spritecracker.kernel.element import IndexerSettings, map_chunks

TAG_BOUNDS = ('strict', 'clamp')


@dataclass(frozen=True)
class _DefaultOverride:
    def __call__(self, **kwargs: Any) -> Self:
        return replace(self, **kwargs)


@dataclass(frozen=True)
class DecoderSettings(IndexerSettings):
    tag_bounds: str = 'strict'
    logger: logging.Logger | logging.LoggerAdapter | None = None

    def __post_init__(self) -> None:
        if self.tag_bounds not in TAG_BOUNDS:
            raise ValueError(  # noqa: TRY003
                f'tag_bounds must be one of {TAG_BOUNDS}, got {self.tag_bounds!r}'
            )


@dataclass(frozen=True)
class Preset(DecoderSettings, _DefaultOverride):
    map_chunks = map_chunks


def get_logger(cfg: Any) -> Any:
    return getattr(cfg, 'logger', None) or logging


shell = Preset(
    header_dtype=ChunkHeader,
    inclheader=True,
)
