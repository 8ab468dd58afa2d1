import numpy as np

from keyer.spill import suppress_spill
from keyer.types import Color

GREEN = Color(0, 255, 0)
BLUE = Color(0, 0, 255)


def test_zero_blend_is_identity() -> None:
    rng = np.random.default_rng(3)
    frame = rng.integers(0, 256, (6, 6, 3), dtype=np.uint8)
    weights = rng.random((6, 6)).astype(np.float32)
    out = suppress_spill(frame, weights, GREEN, 0.0)
    assert np.array_equal(out, frame)
    assert out is not frame


def test_fully_kept_and_fully_keyed_pixels_untouched() -> None:
    frame = np.array([[[100, 220, 90], [10, 250, 10]]], dtype=np.uint8)
    weights = np.array([[0.0, 1.0]], dtype=np.float32)
    out = suppress_spill(frame, weights, GREEN, 1.0)
    assert np.array_equal(out, frame)


def test_partial_pixels_lose_key_channel_excess() -> None:
    frame = np.array([[[100, 200, 90], [100, 200, 90]]], dtype=np.uint8)
    weights = np.array([[0.5, 0.0]], dtype=np.float32)

    full = suppress_spill(frame, weights, GREEN, 1.0)
    assert full[0, 0].tolist() == [100, 100, 90]
    assert full[0, 1].tolist() == [100, 200, 90]

    half = suppress_spill(frame, weights, GREEN, 0.5)
    assert half[0, 0].tolist() == [100, 150, 90]


def test_pixels_without_spill_are_left_alone() -> None:
    frame = np.array([[[200, 120, 80]]], dtype=np.uint8)
    weights = np.array([[0.4]], dtype=np.float32)
    out = suppress_spill(frame, weights, GREEN, 1.0)
    assert np.array_equal(out, frame)


def test_blue_key_targets_blue_channel() -> None:
    frame = np.array([[[60, 80, 200]]], dtype=np.uint8)
    weights = np.array([[0.3]], dtype=np.float32)
    out = suppress_spill(frame, weights, BLUE, 1.0)
    assert out[0, 0].tolist() == [60, 80, 80]


def test_key_without_dominant_channel_is_noop() -> None:
    frame = np.array([[[60, 200, 200]]], dtype=np.uint8)
    weights = np.array([[0.5]], dtype=np.float32)
    out = suppress_spill(frame, weights, Color(0, 255, 255), 1.0)
    assert np.array_equal(out, frame)


def test_input_frame_is_not_mutated() -> None:
    frame = np.array([[[100, 200, 90]]], dtype=np.uint8)
    before = frame.copy()
    suppress_spill(frame, np.array([[0.5]], dtype=np.float32), GREEN, 1.0)
    assert np.array_equal(frame, before)
