import zlib

from spritecracker.errors import DecompressionFailure
from spritecracker.kernel.chunk import ArrayBuffer


def inflate(data: ArrayBuffer) -> bytes:
    if not len(data):
        raise DecompressionFailure('compressed stream is empty')
    stream = zlib.decompressobj()
    try:
        raw = stream.decompress(data) + stream.flush()
    except zlib.error as exc:
        raise DecompressionFailure(f'corrupt compressed stream: {exc}') from exc
    if not stream.eof:
        raise DecompressionFailure('compressed stream is truncated')
    return raw
