import numpy as np
import pytest

from keyer.config import AppConfig


@pytest.fixture
def cfg() -> AppConfig:
    cfg = AppConfig.default()
    cfg.verbose = False
    cfg.pipeline.workers = 2
    cfg.detect.sample_frame = 0
    return cfg


def solid(h: int, w: int, rgb) -> np.ndarray:
    frame = np.empty((h, w, 3), dtype=np.uint8)
    frame[:] = rgb
    return frame


def bordered(h: int, w: int, border_rgb, border: int, seed: int = 0) -> np.ndarray:
    """Uniform border around a noisy, varied-color center."""
    rng = np.random.default_rng(seed)
    frame = solid(h, w, border_rgb)
    frame[border:h - border, border:w - border] = rng.integers(0, 256, (h - 2 * border, w - 2 * border, 3), dtype=np.uint8)
    return frame
