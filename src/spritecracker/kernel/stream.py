from spritecracker.errors import MalformedChunk, TruncatedChunk
from spritecracker.kernel.chunk import ArrayBuffer


class ByteReader:
    """Sequential little-endian cursor over a chunk payload.

    ``base`` is the absolute position of the payload within the document and
    only serves to report where a read ran short.
    """

    __slots__ = ('buffer', 'offset', 'base')

    def __init__(self, buffer: ArrayBuffer, base: int = 0) -> None:
        self.buffer = memoryview(buffer)
        self.offset = 0
        self.base = base

    def __len__(self) -> int:
        return self.remaining

    @property
    def remaining(self) -> int:
        return len(self.buffer) - self.offset

    @property
    def position(self) -> int:
        return self.base + self.offset

    def read(self, size: int) -> memoryview:
        if size > self.remaining:
            exc = TruncatedChunk(size, self.remaining)
            exc.attach(offset=self.position)
            raise exc
        res = self.buffer[self.offset : self.offset + size]
        self.offset += size
        return res

    def skip(self, size: int) -> None:
        self.read(size)

    def rest(self) -> memoryview:
        return self.read(self.remaining)

    def uint(self, size: int) -> int:
        return int.from_bytes(self.read(size), byteorder='little', signed=False)

    def sint(self, size: int) -> int:
        return int.from_bytes(self.read(size), byteorder='little', signed=True)

    def byte(self) -> int:
        return self.uint(1)

    def word(self) -> int:
        return self.uint(2)

    def short(self) -> int:
        return self.sint(2)

    def dword(self) -> int:
        return self.uint(4)

    def long(self) -> int:
        return self.sint(4)

    def fixed(self) -> float:
        # 16.16 fixed point
        return self.long() / 0x10000

    def string(self) -> str:
        length = self.word()
        start = self.position
        raw = bytes(self.read(length))
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as err:
            exc = MalformedChunk(f'string is not valid utf-8: {raw!r}')
            exc.attach(offset=start + err.start)
            raise exc from err
