import numpy as np

from conftest import solid
from keyer.compositor import AlphaCompositor, OpaqueCompositor, build_compositor, composite_frame, scale_to
from keyer.types import Color, SinkKind


def _gradient(h: int, w: int) -> np.ndarray:
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    frame[..., 0] = np.linspace(0, 255, w, dtype=np.uint8)[None, :]
    frame[..., 2] = np.linspace(0, 255, h, dtype=np.uint8)[:, None]
    return frame


def test_unkeyed_pixels_keep_foreground() -> None:
    fg = _gradient(6, 8)
    mask = np.zeros((6, 8), dtype=np.float32)
    for bg in (solid(6, 8, (9, 9, 9)), _gradient(12, 20)):
        assert np.array_equal(composite_frame(fg, mask, bg), fg)


def test_keyed_pixels_show_scaled_background() -> None:
    fg = solid(6, 8, (0, 255, 0))
    mask = np.ones((6, 8), dtype=np.float32)
    bg = _gradient(12, 16)
    out = composite_frame(fg, mask, bg)
    assert out.shape == (6, 8, 3)
    assert np.array_equal(out, scale_to(bg, 8, 6))


def test_half_weight_blends() -> None:
    fg = solid(2, 2, (0, 0, 0))
    bg = solid(2, 2, (200, 100, 50))
    out = composite_frame(fg, np.full((2, 2), 0.5, dtype=np.float32), bg)
    assert out[0, 0].tolist() == [100, 50, 25]


def test_scale_to_same_size_is_passthrough() -> None:
    frame = _gradient(4, 4)
    assert scale_to(frame, 4, 4) is frame


def test_opaque_without_background_uses_fill() -> None:
    fg = solid(3, 3, (200, 10, 10))
    mask = np.zeros((3, 3), dtype=np.float32)
    mask[0, 0] = 1.0

    out = OpaqueCompositor()(fg, mask, None)
    assert out[0, 0].tolist() == [0, 0, 0]
    assert out[1, 1].tolist() == [200, 10, 10]

    out = OpaqueCompositor(Color(255, 255, 255))(fg, mask, None)
    assert out[0, 0].tolist() == [255, 255, 255]


def test_alpha_without_background_is_transparent() -> None:
    fg = solid(2, 2, (200, 10, 10))
    mask = np.array([[1.0, 0.0], [0.5, 0.0]], dtype=np.float32)
    out = AlphaCompositor()(fg, mask, None)
    assert out.shape == (2, 2, 4)
    assert out[..., 3].tolist() == [[0, 255], [128, 255]]
    assert np.array_equal(out[..., :3], fg)


def test_alpha_with_background_is_opaque() -> None:
    fg = solid(2, 2, (0, 255, 0))
    bg = solid(2, 2, (0, 0, 255))
    out = AlphaCompositor()(fg, np.ones((2, 2), dtype=np.float32), bg)
    assert np.all(out[..., 3] == 255)
    assert out[0, 0, :3].tolist() == [0, 0, 255]


def test_build_compositor_follows_sink_kind() -> None:
    assert isinstance(build_compositor(SinkKind.ALPHA), AlphaCompositor)
    opaque = build_compositor(SinkKind.OPAQUE, Color(1, 2, 3))
    assert isinstance(opaque, OpaqueCompositor)
    assert opaque.fill == Color(1, 2, 3)
