import numpy as np
import pytest

from conftest import bordered, solid
from keyer.detect import detect_key_color, pick_key_color, sample_corners
from keyer.errors import DetectionFailure
from keyer.types import Color


def test_green_border_is_detected(cfg) -> None:
    frame = bordered(40, 40, (20, 210, 40), border=8)
    assert detect_key_color(frame, cfg) == Color(20, 210, 40)


def test_large_frame_is_downscaled_before_sampling(cfg) -> None:
    frame = bordered(480, 640, (0, 255, 0), border=80, seed=4)
    samples = sample_corners(frame, cfg.detect.sample_w, cfg.detect.sample_h, cfg.detect.patch)
    assert samples == [Color(0, 255, 0)] * 4
    assert detect_key_color(frame, cfg) == Color(0, 255, 0)


def test_blue_screen_is_detected(cfg) -> None:
    frame = bordered(30, 50, (10, 40, 230), border=6, seed=2)
    assert detect_key_color(frame, cfg) == Color(10, 40, 230)


def test_most_saturated_corner_wins(cfg) -> None:
    frame = solid(20, 20, (0, 180, 0))
    frame[-4:, -4:] = (0, 250, 0)
    frame[:4, :4] = (90, 90, 90)
    assert detect_key_color(frame, cfg) == Color(0, 250, 0)


def test_rgba_frame_is_accepted(cfg) -> None:
    frame = np.zeros((12, 12, 4), dtype=np.uint8)
    frame[..., 1] = 240
    frame[..., 3] = 255
    assert detect_key_color(frame, cfg) == Color(0, 240, 0)


def test_inconclusive_frame_falls_back_to_default(cfg) -> None:
    grey = solid(20, 20, (128, 128, 128))
    assert detect_key_color(grey, cfg) == Color(0, 255, 0)
    assert detect_key_color(grey, cfg, default=Color(1, 2, 3)) == Color(1, 2, 3)


def test_unusable_input_falls_back_to_default(cfg) -> None:
    for frame in (None, np.zeros((0, 0, 3), dtype=np.uint8), np.zeros((4, 4), dtype=np.uint8), np.zeros((4, 4, 3), dtype=np.float32)):
        assert detect_key_color(frame, cfg) == Color(0, 255, 0)


def test_default_follows_config(cfg) -> None:
    cfg.detect.default_color = "#0000ff"
    assert detect_key_color(None, cfg) == Color(0, 0, 255)


def test_weak_dominance_is_rejected() -> None:
    with pytest.raises(DetectionFailure):
        pick_key_color([Color(100, 110, 100)] * 4, min_dominance=24)
    with pytest.raises(DetectionFailure):
        pick_key_color([])
