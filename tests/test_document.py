import logging

import builders
import pytest

from spritecracker.ase import document
from spritecracker.ase.chunks import OpaqueChunk
from spritecracker.ase.preset import ase
from spritecracker.errors import (
    EmptyCelPayload,
    FrameSizeMismatch,
    MalformedHeader,
    TruncatedChunk,
)
from spritecracker.kernel.fileio import ResourceFile


def test_frames_and_durations():
    data = builders.document(
        [builders.frame([], duration=100), builders.frame([], duration=250)]
    )
    doc = document.parse(data)
    assert len(doc) == 2
    assert [frame.duration for frame in doc.frames] == [100, 250]
    assert [frame.offset for frame in doc.frames] == [128, 144]
    assert doc.trailing == 0


def test_new_chunk_count_is_authoritative():
    opaque = [builders.chunk(0x2020, b'\x00' * 4) for _ in range(5)]
    data = builders.document([builders.frame(opaque, old_count=0xFFFF, new_count=5)])
    assert len(document.parse(data).frames[0].chunks) == 5


def test_old_chunk_count_without_new_count():
    opaque = [builders.chunk(0x2020, b'\x00' * 4) for _ in range(3)]
    data = builders.document([builders.frame(opaque, old_count=3, new_count=0)])
    assert len(document.parse(data).frames[0].chunks) == 3


def test_chunk_larger_than_input():
    bad = builders.chunk(0x2020, b'\x00' * 4, size=64)
    data = builders.document([builders.frame([bad])])
    with pytest.raises(TruncatedChunk) as excinfo:
        document.parse(data)
    assert excinfo.value.frame == 0
    assert excinfo.value.offset == 128 + 16


def test_chunk_size_below_prefix():
    bad = builders.chunk(0x2020, b'\x00' * 4, size=4)
    data = builders.document([builders.frame([bad])])
    with pytest.raises(TruncatedChunk):
        document.parse(data)


def test_chunk_sizes_disagree_with_frame_size():
    # chunk claims 8 bytes but carries 10, the frame header counts all 10
    bad = builders.chunk(0x2020, b'\x00' * 4, size=8)
    data = builders.document([builders.frame([bad])])
    with pytest.raises(FrameSizeMismatch) as excinfo:
        document.parse(data)
    assert excinfo.value.declared == 26
    assert excinfo.value.computed == 24
    assert excinfo.value.frame == 0


def test_frame_size_larger_than_chunks():
    chunks = [builders.chunk(0x2020, b'\x00' * 4)]
    data = builders.document([builders.frame(chunks, size=40)])
    with pytest.raises(FrameSizeMismatch):
        document.parse(data)


def test_trailing_bytes_are_only_reported(caplog):
    data = builders.document([builders.frame([])]) + b'\x00\x00\x00'
    with caplog.at_level(logging.WARNING):
        doc = document.parse(data)
    assert doc.trailing == 3
    assert 'trailing' in caplog.text


def test_configured_logger_receives_warnings(caplog):
    data = builders.document([builders.frame([])]) + b'\x00'
    with caplog.at_level(logging.WARNING, logger='sprites'):
        document.parse(data, ase(logger=logging.getLogger('sprites')))
    assert [record.name for record in caplog.records] == ['sprites']


def test_unknown_chunk_is_preserved(caplog):
    data = builders.document([builders.frame([builders.chunk(0x7777, b'abc')])])
    with caplog.at_level(logging.DEBUG):
        doc = document.parse(data)
    elem = doc.frames[0].chunks[0]
    assert elem.value == OpaqueChunk(0x7777, b'abc')
    assert elem.attribs == {'index': 0, 'offset': 144, 'size': 9, 'frame': 0}
    assert '0x7777' in caplog.text


def test_errors_carry_location():
    data = builders.document(
        [builders.frame([]), builders.frame([builders.cel(b'', 0)])]
    )
    with pytest.raises(EmptyCelPayload) as excinfo:
        document.parse(data)
    exc = excinfo.value
    assert (exc.frame, exc.chunk_type, exc.offset) == (1, 0x2005, 160)
    assert str(exc) == 'cel payload is empty (frame 1, chunk 0x2005, offset 0xa0)'


def test_missing_frame():
    data = builders.header(2) + builders.frame([])
    with pytest.raises(MalformedHeader) as excinfo:
        document.parse(data)
    assert excinfo.value.frame == 1


def test_from_path(tmp_path):
    path = tmp_path / 'sprite.aseprite'
    path.write_bytes(builders.document([builders.frame([], duration=40)]))
    doc = document.from_path(path)
    assert doc.frames[0].duration == 40


def test_closed_resource_refuses_reads(tmp_path):
    path = tmp_path / 'sprite.aseprite'
    path.write_bytes(builders.document([]))
    with ResourceFile.load(path) as res:
        assert res[4:6] == b'\xe0\xa5'
    with pytest.raises(OSError, match='closed file'):
        res[0]


def test_from_empty_path(tmp_path):
    path = tmp_path / 'empty.ase'
    path.write_bytes(b'')
    with pytest.raises(MalformedHeader):
        document.from_path(path)


def test_frame_summary_is_logged(caplog):
    chunks = [
        builders.chunk(0x2020, b''),
        builders.chunk(0x2020, b''),
        builders.chunk(0x2022, b''),
    ]
    with caplog.at_level(logging.DEBUG):
        document.parse(builders.document([builders.frame(chunks)]))
    assert 'frame 0 at 0x80: 0x2020*2, 0x2022' in caplog.text
