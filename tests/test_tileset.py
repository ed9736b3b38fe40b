import builders
import pytest

from spritecracker.ase.tileset import ExternalLink, TilesetChunk
from spritecracker.errors import (
    DecompressionFailure,
    TilesetSizeMismatch,
    UnsupportedColorDepth,
)
from spritecracker.kernel.stream import ByteReader


def decode_tileset(data, header):
    return TilesetChunk.decode(ByteReader(data[6:]), header)


def test_slices_tiles(indexed_header):
    data = builders.tileset(bytes(range(12)), count=3)
    tileset = decode_tileset(data, indexed_header)
    assert tileset.pixels.shape == (3, 2, 2)
    assert tileset.pixels[1].tolist() == [[4, 5], [6, 7]]
    assert tileset.name == 'tiles'
    assert tileset.base_index == 1
    assert tileset.embedded
    assert tileset.empty_tile_zero


def test_rgba_tiles(rgba_header):
    data = builders.tileset(bytes(range(32)), count=2)
    tileset = decode_tileset(data, rgba_header)
    assert tileset.pixels.shape == (2, 2, 2, 4)
    assert tileset.pixels[1, 0, 0].tolist() == [16, 17, 18, 19]


def test_blob_not_a_multiple_of_tile_size(indexed_header):
    with pytest.raises(TilesetSizeMismatch):
        decode_tileset(builders.tileset(bytes(10), count=3), indexed_header)


def test_blob_disagrees_with_tile_count(indexed_header):
    with pytest.raises(TilesetSizeMismatch):
        decode_tileset(builders.tileset(bytes(12), count=4), indexed_header)


def test_grayscale_tiles(grayscale_header):
    with pytest.raises(UnsupportedColorDepth):
        decode_tileset(builders.tileset(bytes(16), count=2), grayscale_header)


def test_external_link(indexed_header):
    data = builders.tileset(b'', count=5, flags=1, external=(3, 9))
    tileset = decode_tileset(data, indexed_header)
    assert tileset.external == ExternalLink(3, 9)
    assert tileset.pixels is None
    assert not tileset.embedded


def test_external_link_precedes_embedded_tiles(indexed_header):
    data = builders.tileset(bytes(8), count=2, flags=1 | 2, external=(1, 2))
    tileset = decode_tileset(data, indexed_header)
    assert tileset.external == ExternalLink(1, 2)
    assert tileset.pixels.shape == (2, 2, 2)


def test_corrupt_blob(indexed_header):
    with pytest.raises(DecompressionFailure):
        decode_tileset(builders.tileset(b'', count=1, blob=b'garbage!'), indexed_header)
