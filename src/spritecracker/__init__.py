from spritecracker.ase.assemble import (
    AnimationState,
    AssembledFrame,
    Asset,
    ResolvedTileset,
)
from spritecracker.ase.palette import Palette
from spritecracker.ase.sprite import decode, load
from spritecracker.ase.tags import LoopDirection
from spritecracker.ase.tilemap import Tile, Tilemap
from spritecracker.errors import AseError

__all__ = [
    'AnimationState',
    'AseError',
    'AssembledFrame',
    'Asset',
    'LoopDirection',
    'Palette',
    'ResolvedTileset',
    'Tile',
    'Tilemap',
    'decode',
    'load',
]
