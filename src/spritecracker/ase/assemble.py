"""Second pass turning a decoded document into a renderable asset.

Nothing here reads bytes. Every chunk was decoded by the framer already, so
the palette, the layers and the tilesets are fully known before a single
frame is resolved, whatever order their chunks came in.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace

import numpy as np
from numpy.typing import NDArray

from spritecracker.ase.cel import CelChunk, ImagePayload, LinkedCel
from spritecracker.ase.document import Document, Frame
from spritecracker.ase.header import ColorDepth, DocumentHeader
from spritecracker.ase.layer import LayerChunk
from spritecracker.ase.palette import OldPaletteChunk, Palette, PaletteChunk
from spritecracker.ase.preset import ase
from spritecracker.ase.profile import ColorProfile
from spritecracker.ase.tags import LoopDirection, Tag, TagsChunk
from spritecracker.ase.tilemap import Tile, Tilemap
from spritecracker.ase.tileset import TilesetChunk, TilesetFlags
from spritecracker.errors import (
    TagRangeOutOfBounds,
    TileIndexOutOfRange,
    UnresolvedLinkedCel,
)
from spritecracker.graphics.frame import compose_frame, render_tiles
from spritecracker.graphics.image import Origin, Pixels, orient_tile
from spritecracker.kernel.element import Element, element_context, error_context
from spritecracker.kernel.preset import DecoderSettings, get_logger


def _same_arrays(left: Sequence[Pixels | None], right: Sequence[Pixels | None]) -> bool:
    return len(left) == len(right) and all(
        (a is None and b is None)
        or (a is not None and b is not None and np.array_equal(a, b))
        for a, b in zip(left, right, strict=True)
    )


@dataclass(frozen=True, eq=False)
class ResolvedTileset:
    id: int
    name: str
    flags: TilesetFlags
    tile_width: int
    tile_height: int
    tiles: tuple[Pixels, ...]

    def __len__(self) -> int:
        return len(self.tiles)

    def __getitem__(self, tile_id: int) -> Pixels:
        if not 0 <= tile_id < len(self.tiles):
            raise TileIndexOutOfRange(tile_id, len(self.tiles))
        return self.tiles[tile_id]

    def __iter__(self) -> Iterator[Pixels]:
        return iter(self.tiles)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedTileset):
            return NotImplemented
        return (
            (self.id, self.name, self.flags, self.tile_width, self.tile_height)
            == (other.id, other.name, other.flags, other.tile_width, other.tile_height)
            and _same_arrays(self.tiles, other.tiles)
        )

    @property
    def tile_size(self) -> tuple[int, int]:
        return self.tile_width, self.tile_height

    def resolve(self, tile: Tile, legacy_empty_id: int) -> Tile:
        if tile.tile_id == legacy_empty_id or (
            tile.tile_id == 0 and self.flags & TilesetFlags.EMPTY_TILE_ZERO
        ):
            return replace(tile, empty=True, image=None)
        return replace(tile, image=self[tile.tile_id])


@dataclass(frozen=True, eq=False)
class AssembledFrame:
    index: int
    duration: int
    # (h, w, 4) RGBA over the whole canvas
    image: NDArray[np.uint8]
    tilemap: Tilemap | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssembledFrame):
            return NotImplemented
        return (
            (self.index, self.duration, self.tilemap)
            == (other.index, other.duration, other.tilemap)
            and np.array_equal(self.image, other.image)
        )


@dataclass(frozen=True, eq=False)
class AnimationState:
    name: str
    start: int
    stop: int
    direction: LoopDirection
    repeat: int
    images: tuple[NDArray[np.uint8], ...]
    tilemaps: tuple[Tilemap | None, ...]
    durations: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.durations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AnimationState):
            return NotImplemented
        return (
            (self.name, self.start, self.stop, self.direction, self.repeat)
            == (other.name, other.start, other.stop, other.direction, other.repeat)
            and self.tilemaps == other.tilemaps
            and self.durations == other.durations
            and _same_arrays(self.images, other.images)
        )

    @property
    def has_animation(self) -> bool:
        return len(self.durations) > 1


@dataclass(frozen=True)
class Asset:
    header: DocumentHeader
    palette: Palette
    layers: tuple[LayerChunk, ...]
    tilesets: dict[int, ResolvedTileset]
    frames: tuple[AssembledFrame, ...]
    states: dict[str, AnimationState]
    color_profile: ColorProfile | None = None
    palette_changes: tuple[PaletteChunk, ...] = ()

    @property
    def tileset(self) -> ResolvedTileset | None:
        return next(iter(self.tilesets.values()), None)

    @property
    def images(self) -> tuple[NDArray[np.uint8], ...]:
        return tuple(frame.image for frame in self.frames)

    @property
    def tilemaps(self) -> tuple[Tilemap | None, ...]:
        return tuple(frame.tilemap for frame in self.frames)

    @property
    def durations(self) -> tuple[int, ...]:
        return tuple(frame.duration for frame in self.frames)


def resolve_pixels(palette: Palette, depth: int, pixels: Pixels) -> Pixels:
    if depth == ColorDepth.INDEXED:
        return palette.resolve(pixels)
    return pixels


def resolve_tileset(
    palette: Palette,
    depth: int,
    chunk: TilesetChunk,
) -> ResolvedTileset:
    tiles: tuple[Pixels, ...] = ()
    if chunk.pixels is not None:
        tiles = tuple(resolve_pixels(palette, depth, chunk.pixels))
    return ResolvedTileset(
        chunk.id,
        chunk.name,
        chunk.flags,
        chunk.tile_width,
        chunk.tile_height,
        tiles,
    )


def layer_visibility(layers: Sequence[LayerChunk]) -> list[bool]:
    # a layer shows only when every enclosing group shows too
    visible = []
    ancestors: list[bool] = []
    for layer in layers:
        del ancestors[layer.child_level :]
        shown = layer.visible and all(ancestors)
        ancestors.append(shown)
        visible.append(shown)
    return visible


def blend_opacity(cel_opacity: int, layer_opacity: int) -> int:
    return (cel_opacity * layer_opacity + 127) // 255


def tile_pixels(tile: Tile) -> Pixels | None:
    if tile.image is None:
        return None
    return orient_tile(tile.image, tile.x_flip, tile.y_flip, tile.diagonal_flip)


def composite_key(cel: CelChunk) -> tuple[int, int]:
    return cel.layer + cel.z_index, cel.z_index


class Assembler:
    def __init__(self, cfg: DecoderSettings, document: Document) -> None:
        self.cfg = cfg
        self.document = document
        self.header = document.header
        self.palette = Palette.from_chunks(
            chunk for _, chunk in document.findall(OldPaletteChunk)
        )
        self.layers = tuple(layer for _, layer in document.findall(LayerChunk))
        self.visible = layer_visibility(self.layers)
        self.tilesets: dict[int, ResolvedTileset] = {}
        for frame, elem in document.elements(TilesetChunk):
            with error_context(frame=frame.index), element_context(elem):
                self.tilesets[elem.value.id] = resolve_tileset(
                    self.palette, self.header.color_depth, elem.value
                )

    def layer_shown(self, index: int) -> bool:
        return index >= len(self.layers) or self.visible[index]

    def layer_opacity(self, index: int) -> int:
        if index >= len(self.layers) or not self.header.layer_opacity_valid:
            return 255
        return self.layers[index].opacity

    def tileset_for(self, index: int) -> ResolvedTileset | None:
        if index < len(self.layers):
            tileset_index = self.layers[index].tileset_index
            if tileset_index is not None and tileset_index in self.tilesets:
                return self.tilesets[tileset_index]
        return next(iter(self.tilesets.values()), None)

    def resolve_link(self, frame: Frame, cel: CelChunk) -> CelChunk:
        seen = {frame.index}
        target = cel
        while isinstance(target.payload, LinkedCel):
            position = target.payload.frame
            if position in seen or position >= len(self.document.frames):
                raise UnresolvedLinkedCel(
                    f'cel on layer {cel.layer} links to unusable frame {position}'
                )
            seen.add(position)
            linked = next(
                (
                    other
                    for other in self.document.frames[position].findall(CelChunk)
                    if other.layer == cel.layer
                ),
                None,
            )
            if linked is None:
                raise UnresolvedLinkedCel(
                    f'frame {position} has no cel on layer {cel.layer}'
                )
            target = linked
        return replace(cel, type=target.type, payload=target.payload)

    def resolve_tilemap(self, cel: CelChunk) -> tuple[Tilemap, Pixels]:
        tilemap = cel.payload
        assert isinstance(tilemap, Tilemap)
        tileset = self.tileset_for(cel.layer)
        legacy_empty_id = tilemap.masks.legacy_empty_id
        if tileset is None:
            tiles = tuple(
                self._orphan_tile(tile, legacy_empty_id) for tile in tilemap
            )
            tile_size = self.header.grid_size
        else:
            tiles = tuple(tileset.resolve(tile, legacy_empty_id) for tile in tilemap)
            tile_size = tileset.tile_size
        resolved = replace(tilemap, tiles=tiles)
        image = render_tiles(
            [tile_pixels(tile) for tile in tiles],
            tilemap.width,
            tile_size,
        )
        return resolved, image

    @staticmethod
    def _orphan_tile(tile: Tile, legacy_empty_id: int) -> Tile:
        if tile.tile_id in (0, legacy_empty_id):
            return replace(tile, empty=True)
        raise TileIndexOutOfRange(tile.tile_id, 0)

    def cel_pixels(self, cel: CelChunk) -> tuple[Pixels, Tilemap | None]:
        if isinstance(cel.payload, ImagePayload):
            pixels = resolve_pixels(
                self.palette, self.header.color_depth, cel.payload.pixels
            )
            return pixels, None
        tilemap, pixels = self.resolve_tilemap(cel)
        return pixels, tilemap

    def frame(self, frame: Frame) -> AssembledFrame:
        cels: list[tuple[CelChunk, Element]] = []
        for elem in frame.elements(CelChunk):
            with element_context(elem):
                cels.append((self.resolve_link(frame, elem.value), elem))

        layers: list[tuple[Origin, Pixels, int]] = []
        tilemap = None
        for cel, elem in sorted(cels, key=lambda item: composite_key(item[0])):
            if not self.layer_shown(cel.layer):
                continue
            with element_context(elem):
                pixels, resolved = self.cel_pixels(cel)
            if tilemap is None:
                tilemap = resolved
            opacity = blend_opacity(cel.opacity, self.layer_opacity(cel.layer))
            layers.append((cel.origin, pixels, opacity))
        image = compose_frame(self.header.width, self.header.height, layers)
        return AssembledFrame(frame.index, frame.duration, image, tilemap)

    def tag_range(self, tag: Tag, nframes: int) -> tuple[int, int] | None:
        if tag.start <= tag.stop < nframes:
            return tag.start, tag.stop
        if self.cfg.tag_bounds == 'strict':
            raise TagRangeOutOfBounds(tag.name, tag.start, tag.stop, nframes)
        stop = min(tag.stop, nframes - 1)
        if tag.start > stop:
            get_logger(self.cfg).warning(
                'dropping tag %r: frames %d..%d fall outside %d frames',
                tag.name,
                tag.start,
                tag.stop,
                nframes,
            )
            return None
        get_logger(self.cfg).warning(
            'clamping tag %r from frames %d..%d to %d..%d',
            tag.name,
            tag.start,
            tag.stop,
            tag.start,
            stop,
        )
        return tag.start, stop

    def states(self, frames: Sequence[AssembledFrame]) -> dict[str, AnimationState]:
        states: dict[str, AnimationState] = {}
        for _, chunk in self.document.findall(TagsChunk):
            for tag in chunk.tags:
                bounds = self.tag_range(tag, len(frames))
                if bounds is None:
                    continue
                if tag.name in states:
                    get_logger(self.cfg).warning(
                        'duplicate tag %r, keeping the last one', tag.name
                    )
                start, stop = bounds
                span = frames[start : stop + 1]
                states[tag.name] = AnimationState(
                    tag.name,
                    start,
                    stop,
                    tag.direction,
                    tag.repeat,
                    tuple(frame.image for frame in span),
                    tuple(frame.tilemap for frame in span),
                    tuple(frame.duration for frame in span),
                )
        return states

    def build(self) -> Asset:
        frames = []
        for frame in self.document.frames:
            with error_context(frame=frame.index):
                frames.append(self.frame(frame))
        profiles = [profile for _, profile in self.document.findall(ColorProfile)]
        return Asset(
            self.header,
            self.palette,
            self.layers,
            self.tilesets,
            tuple(frames),
            self.states(frames),
            profiles[-1] if profiles else None,
            tuple(chunk for _, chunk in self.document.findall(PaletteChunk)),
        )


def assemble(document: Document, cfg: DecoderSettings = ase) -> Asset:
    return Assembler(cfg, document).build()
