from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .classifier import classify_frame
from .refine import refine_mask
from .spill import suppress_spill
from .types import KeySettings


def check_frame(frame, expected_hw: tuple[int, int] | None = None) -> np.ndarray:
    if not isinstance(frame, np.ndarray):
        raise ValueError(f"frame must be an ndarray, got {type(frame).__name__}")
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError(f"frame must be (H, W, 3), got {frame.shape}")
    if frame.shape[0] == 0 or frame.shape[1] == 0:
        raise ValueError("empty frame")
    if frame.dtype != np.uint8:
        raise ValueError(f"frame must be uint8, got {frame.dtype}")
    if expected_hw is not None and frame.shape[:2] != expected_hw:
        raise ValueError(
            f"frame size changed mid-stream: {frame.shape[1]}x{frame.shape[0]}, "
            f"expected {expected_hw[1]}x{expected_hw[0]}"
        )
    return frame


class FrameKeyer:
    """Classify -> despill -> refine -> composite for one frame at a time.

    Classification and despill are split into row bands and run on a
    thread pool; each band reads its own slice and returns fresh arrays.
    The blur and the composite need the whole mask, so they run after the
    bands are stitched back together.
    """

    def __init__(self, settings: KeySettings, compositor, workers: int = 1):
        if settings.key_color is None:
            raise ValueError("FrameKeyer needs a resolved key color")
        self.settings = settings
        self.compositor = compositor
        self.workers = max(int(workers), 1)
        self.frame_hw: tuple[int, int] | None = None
        self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="keyer_band") if self.workers > 1 else None

    def _key_band(self, band: np.ndarray):
        weights = classify_frame(band, self.settings)
        fixed = suppress_spill(band, weights, self.settings.key_color, self.settings.blend)
        return weights, fixed

    def key(self, frame: np.ndarray):
        """Despilled foreground and refined mask for ``frame``."""
        frame = check_frame(frame, self.frame_hw)
        if self.frame_hw is None:
            self.frame_hw = frame.shape[:2]

        n_bands = min(self.workers, frame.shape[0])
        if self._pool is None or n_bands == 1:
            weights, fixed = self._key_band(frame)
        else:
            bands = np.array_split(frame, n_bands, axis=0)
            results = list(self._pool.map(self._key_band, bands))
            weights = np.concatenate([r[0] for r in results], axis=0)
            fixed = np.concatenate([r[1] for r in results], axis=0)

        mask = refine_mask(weights, self.settings.edge_blur_radius)
        return fixed, mask

    def process(self, frame: np.ndarray, background: np.ndarray | None) -> np.ndarray:
        fixed, mask = self.key(frame)
        return self.compositor(fixed, mask, background)

    def close(self):
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()
