from enum import IntEnum


class ChunkType(IntEnum):
    OLD_PALETTE = 0x0004
    OLD_PALETTE_64 = 0x0011
    LAYER = 0x2004
    CEL = 0x2005
    CEL_EXTRA = 0x2006
    COLOR_PROFILE = 0x2007
    EXTERNAL_FILES = 0x2008
    MASK = 0x2016  # deprecated
    PATH = 0x2017  # never used
    TAGS = 0x2018
    PALETTE = 0x2019
    USER_DATA = 0x2020
    SLICE = 0x2022
    TILESET = 0x2023


def describe(chunk_type: int) -> str:
    try:
        return ChunkType(chunk_type).name
    except ValueError:
        return f'0x{chunk_type:04x}'
