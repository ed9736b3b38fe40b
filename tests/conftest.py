import builders
import pytest

from spritecracker.ase.header import DocumentHeader


@pytest.fixture
def indexed_header() -> DocumentHeader:
    return DocumentHeader.from_buffer(builders.header(1, depth=8))


@pytest.fixture
def rgba_header() -> DocumentHeader:
    return DocumentHeader.from_buffer(builders.header(1, depth=32))


@pytest.fixture
def grayscale_header() -> DocumentHeader:
    return DocumentHeader.from_buffer(builders.header(1, depth=16))
