import os
from typing import Any

from spritecracker.ase import document
from spritecracker.ase.assemble import Asset, assemble
from spritecracker.ase.preset import ase
from spritecracker.kernel.chunk import ArrayBuffer
from spritecracker.kernel.fileio import ResourceFile


def decode(buffer: ArrayBuffer, **overrides: Any) -> Asset:
    cfg = ase(**overrides)
    return assemble(document.parse(buffer, cfg), cfg)


def load(path: str | os.PathLike[str], **overrides: Any) -> Asset:
    with ResourceFile.load(path) as res:
        return decode(res, **overrides)
