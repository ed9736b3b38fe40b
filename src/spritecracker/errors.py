from typing import Any


class AseError(Exception):
    """Base class for every decode failure.

    The framer attaches the location of the failing chunk while the error
    propagates, so the message reads like
    ``chunk data size mismatch: 10 != 24 (frame 2, chunk 0x2005, offset 0x1a4)``.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.frame: int | None = None
        self.chunk_type: int | None = None
        self.offset: int | None = None

    def attach(self, **context: Any) -> None:
        # innermost context wins
        for key, value in context.items():
            if getattr(self, key, None) is None:
                setattr(self, key, value)

    def __str__(self) -> str:
        context = []
        if self.frame is not None:
            context.append(f'frame {self.frame}')
        if self.chunk_type is not None:
            context.append(f'chunk 0x{self.chunk_type:04x}')
        if self.offset is not None:
            context.append(f'offset 0x{self.offset:x}')
        if not context:
            return self.message
        return f'{self.message} ({", ".join(context)})'


class MalformedHeader(AseError):
    pass


class TruncatedChunk(AseError):
    def __init__(self, expected: int, available: int) -> None:
        super().__init__(f'chunk data size mismatch: {available} != {expected}')
        self.expected = expected
        self.available = available


class FrameSizeMismatch(AseError):
    def __init__(self, declared: int, computed: int) -> None:
        super().__init__(f'frame size mismatch: expected {declared}, got {computed}')
        self.declared = declared
        self.computed = computed


class MalformedChunk(AseError):
    pass


class DecompressionFailure(AseError):
    pass


class TilesetSizeMismatch(AseError):
    pass


class TileCountMismatch(AseError):
    pass


class ImageSizeMismatch(AseError):
    pass


class EmptyCelPayload(AseError):
    def __init__(self) -> None:
        super().__init__('cel payload is empty')


class UnsupportedColorDepth(AseError):
    def __init__(self, depth: int) -> None:
        super().__init__(f'pixel data with color depth {depth} is not supported')
        self.depth = depth


class PaletteIndexOutOfRange(AseError):
    def __init__(self, index: int, size: int) -> None:
        super().__init__(f'palette index {index} out of range for {size} colors')
        self.index = index
        self.size = size


class TileIndexOutOfRange(AseError):
    def __init__(self, tile_id: int, size: int) -> None:
        super().__init__(f'tile id {tile_id} out of range for {size} tiles')
        self.tile_id = tile_id
        self.size = size


class UnresolvedLinkedCel(AseError):
    pass


class TagRangeOutOfBounds(AseError):
    def __init__(self, name: str, start: int, stop: int, nframes: int) -> None:
        super().__init__(
            f'tag {name!r} spans frames {start}..{stop} but only {nframes} decoded'
        )
        self.name = name
        self.start = start
        self.stop = stop
        self.nframes = nframes
