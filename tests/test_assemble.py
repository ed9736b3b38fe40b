import builders
import numpy as np
import pytest
from builders import BLACK, BLUE, GREEN, RED

from spritecracker import decode, load
from spritecracker.ase.profile import ColorProfileType
from spritecracker.errors import (
    MalformedChunk,
    PaletteIndexOutOfRange,
    UnresolvedLinkedCel,
)
from spritecracker.graphics.image import convert_to_pil_image

RED_PIXEL = [255, 0, 0, 255]
GREEN_PIXEL = [0, 255, 0, 255]
BLUE_PIXEL = [0, 0, 255, 255]
CLEAR = [0, 0, 0, 0]


def rgba(color, count):
    return bytes((*color, 255)) * count


def test_indexed_pixels_resolve_through_palette():
    data = builders.document(
        [
            builders.frame(
                [
                    builders.old_palette([(0, [BLACK, RED, GREEN, BLUE])]),
                    builders.raw_image(2, 2, bytes([1, 2, 3, 0])),
                ]
            )
        ],
        width=2,
        height=2,
    )
    asset = decode(data)
    assert asset.images[0].dtype == np.uint8
    assert asset.images[0].tolist() == [
        [RED_PIXEL, GREEN_PIXEL],
        [BLUE_PIXEL, CLEAR],
    ]


def test_index_past_palette_is_rejected():
    data = builders.document(
        [
            builders.frame(
                [
                    builders.old_palette([(0, [BLACK, RED, GREEN, BLUE])]),
                    builders.raw_image(1, 1, bytes([4])),
                ]
            )
        ]
    )
    with pytest.raises(PaletteIndexOutOfRange) as excinfo:
        decode(data)
    assert (excinfo.value.index, excinfo.value.size) == (4, 4)
    exc = excinfo.value
    assert (exc.frame, exc.chunk_type, exc.offset) == (0, 0x2005, 0xA6)


def test_palette_may_follow_the_cels_using_it():
    data = builders.document(
        [
            builders.frame([builders.raw_image(1, 1, bytes([1]))]),
            builders.frame([builders.old_palette([(0, [BLACK, RED])])]),
        ],
        width=1,
        height=1,
    )
    assert decode(data).images[0].tolist() == [[RED_PIXEL]]


def two_layer_document(bottom, top, size=3):
    return builders.document(
        [
            builders.frame(
                [
                    builders.layer('bottom'),
                    builders.layer('top'),
                    top,
                    bottom,
                ]
            )
        ],
        width=size,
        height=size,
        depth=32,
    )


def test_cels_composite_in_layer_order_with_offsets():
    data = two_layer_document(
        builders.raw_image(2, 2, rgba(RED, 4), layer=0),
        builders.raw_image(2, 2, rgba(BLUE, 4), layer=1, x=1, y=1),
    )
    image = decode(data).images[0]
    assert image.shape == (3, 3, 4)
    assert image.tolist() == [
        [RED_PIXEL, RED_PIXEL, CLEAR],
        [RED_PIXEL, BLUE_PIXEL, BLUE_PIXEL],
        [CLEAR, BLUE_PIXEL, BLUE_PIXEL],
    ]


def test_z_index_moves_cels_down():
    data = two_layer_document(
        builders.raw_image(2, 2, rgba(RED, 4), layer=0),
        builders.raw_image(2, 2, rgba(BLUE, 4), layer=1, x=1, y=1, z_index=-2),
    )
    image = decode(data).images[0]
    assert image[1, 1].tolist() == RED_PIXEL
    assert image[2, 2].tolist() == BLUE_PIXEL


def test_cels_outside_the_canvas_are_clipped():
    data = builders.document(
        [
            builders.frame(
                [
                    builders.raw_image(2, 2, rgba(BLUE, 4), x=-1, y=-1),
                    builders.raw_image(2, 2, rgba(RED, 4), x=5, y=5),
                ]
            )
        ],
        width=2,
        height=2,
        depth=32,
    )
    assert decode(data).images[0].tolist() == [
        [BLUE_PIXEL, CLEAR],
        [CLEAR, CLEAR],
    ]


@pytest.mark.parametrize(
    ('cel_opacity', 'layer_opacity', 'flags', 'alpha'),
    [
        (128, 255, 1, 128),
        (255, 128, 1, 128),
        (255, 128, 0, 255),
        (0, 255, 1, 0),
    ],
)
def test_opacity(cel_opacity, layer_opacity, flags, alpha):
    data = builders.document(
        [
            builders.frame(
                [
                    builders.layer(opacity=layer_opacity),
                    builders.raw_image(1, 1, rgba(RED, 1), opacity=cel_opacity),
                ]
            )
        ],
        width=1,
        height=1,
        depth=32,
        flags=flags,
    )
    assert decode(data).images[0][0, 0, 3] == alpha


def test_hidden_layers_are_skipped():
    data = builders.document(
        [
            builders.frame(
                [
                    builders.layer('hidden', flags=0),
                    builders.layer('group', kind=1, flags=0),
                    builders.layer('child', child_level=1),
                    builders.layer('shown'),
                    builders.raw_image(1, 1, rgba(RED, 1), layer=0),
                    builders.raw_image(1, 1, rgba(GREEN, 1), layer=2),
                    builders.raw_image(1, 1, rgba(BLUE, 1), layer=3, x=1),
                ]
            )
        ],
        width=2,
        height=1,
        depth=32,
    )
    asset = decode(data)
    names = [layer.name for layer in asset.layers]
    assert names == ['hidden', 'group', 'child', 'shown']
    assert asset.images[0].tolist() == [[CLEAR, BLUE_PIXEL]]


def test_linked_cel_reuses_earlier_frame():
    data = builders.document(
        [
            builders.frame([builders.raw_image(1, 1, rgba(RED, 1))]),
            builders.frame([builders.linked_cel(0)]),
        ],
        width=1,
        height=1,
        depth=32,
    )
    asset = decode(data)
    assert asset.images[1].tolist() == [[RED_PIXEL]]


@pytest.mark.parametrize('position', [0, 1, 9])
def test_linked_cel_without_target(position):
    data = builders.document(
        [
            builders.frame([builders.raw_image(1, 1, rgba(RED, 1), layer=1)]),
            builders.frame([builders.linked_cel(position)]),
        ],
        width=1,
        height=1,
        depth=32,
    )
    with pytest.raises(UnresolvedLinkedCel) as excinfo:
        decode(data)
    exc = excinfo.value
    assert (exc.frame, exc.chunk_type, exc.offset) == (1, 0x2005, 0xBE)


def test_color_profile_is_carried():
    data = builders.document(
        [builders.frame([builders.color_profile(2, flags=1, gamma=2.2, icc=b'ICC!')])]
    )
    profile = decode(data).color_profile
    assert profile.type == ColorProfileType.ICC
    assert profile.gamma == pytest.approx(2.2, abs=1e-4)
    assert profile.icc == b'ICC!'


def test_srgb_profile_without_gamma():
    data = builders.document([builders.frame([builders.color_profile(1)])])
    profile = decode(data).color_profile
    assert profile.type == ColorProfileType.SRGB
    assert profile.gamma is None
    assert profile.icc is None


def test_unknown_profile_type():
    data = builders.document([builders.frame([builders.color_profile(5)])])
    with pytest.raises(MalformedChunk):
        decode(data)


def full_document():
    return builders.document(
        [
            builders.frame(
                [
                    builders.old_palette([(0, [BLACK, RED, GREEN])]),
                    builders.tileset(
                        bytes([0, 1, 2, 1]), count=4, tile_width=1, tile_height=1
                    ),
                    builders.layer('image'),
                    builders.layer('map', kind=2, tileset_index=0),
                    builders.raw_image(2, 1, bytes([1, 2]), layer=0),
                    builders.tilemap(2, 2, [1, 2, 3, 0], layer=1, x=0, y=1),
                    builders.tags([(0, 1, 0, 0, 'loop')]),
                    builders.chunk(0x2022, b'slice'),
                ],
                duration=120,
            ),
            builders.frame([builders.linked_cel(0, layer=0)], duration=80),
        ],
        width=2,
        height=3,
    )


def test_decoding_is_idempotent():
    data = full_document()
    first, second = decode(data), decode(data)
    assert first == second
    assert first.states['loop'] == second.states['loop']
    assert first.durations == (120, 80)


def test_full_document():
    asset = decode(full_document())
    assert asset.images[0].tolist() == [
        [RED_PIXEL, GREEN_PIXEL],
        [RED_PIXEL, GREEN_PIXEL],
        [RED_PIXEL, CLEAR],
    ]
    assert asset.tilemaps[0].tile_ids.tolist() == [[1, 2], [3, 0]]
    assert asset.tilemaps[1] is None
    assert asset.images[1].tolist()[0] == [RED_PIXEL, GREEN_PIXEL]


def test_load_from_path(tmp_path):
    data = full_document()
    path = tmp_path / 'sprite.aseprite'
    path.write_bytes(data)
    assert load(path) == decode(data)


def test_pil_conversion():
    asset = decode(full_document())
    image = convert_to_pil_image(asset.images[0])
    assert image.mode == 'RGBA'
    assert image.size == (2, 3)
    assert image.getpixel((1, 0)) == tuple(GREEN_PIXEL)

    indices = np.array([[1, 2]], dtype=np.uint8)
    indexed = convert_to_pil_image(indices, asset.palette.colors)
    assert indexed.mode == 'P'
    assert indexed.convert('RGBA').getpixel((0, 0)) == tuple(RED_PIXEL)
