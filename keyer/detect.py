"""Key color auto-detection.

A green (or blue, or any single-hue) screen usually fills the edges of the
shot, so the four corners of one early frame are sampled and the most
saturated one toward a single channel is taken as the key. Anything
inconclusive falls back to the default key color.
"""

import cv2
import numpy as np

from .config import AppConfig
from .errors import DetectionFailure
from .types import DEFAULT_KEY_COLOR, Color


def _prepare(frame) -> np.ndarray:
    if not isinstance(frame, np.ndarray):
        raise DetectionFailure(f"expected an ndarray, got {type(frame).__name__}")
    if frame.ndim != 3 or frame.shape[2] not in (3, 4) or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise DetectionFailure(f"unexpected frame shape {frame.shape}")
    if frame.dtype != np.uint8:
        raise DetectionFailure(f"unexpected frame dtype {frame.dtype}")
    return frame[..., :3]


def _corner_patches(frame: np.ndarray, patch: int):
    h, w = frame.shape[:2]
    ph, pw = min(patch, h), min(patch, w)
    return [
        frame[:ph, :pw],
        frame[:ph, w - pw:],
        frame[h - ph:, :pw],
        frame[h - ph:, w - pw:],
    ]


def sample_corners(frame, sample_w: int = 320, sample_h: int = 240, patch: int = 4) -> list[Color]:
    """Median color of a small patch at each corner of the (downscaled) frame."""
    rgb = _prepare(frame)
    h, w = rgb.shape[:2]
    if w > sample_w or h > sample_h:
        rgb = cv2.resize(rgb, (sample_w, sample_h), interpolation=cv2.INTER_AREA)

    samples = []
    for region in _corner_patches(rgb, patch):
        median = np.median(region.reshape(-1, 3), axis=0)
        samples.append(Color(*(int(round(c)) for c in median)))
    return samples


def pick_key_color(samples: list[Color], min_dominance: int = 24) -> Color:
    if not samples:
        raise DetectionFailure("no samples")
    best = max(samples, key=lambda c: c.dominance())
    if best.dominant_channel() is None or best.dominance() < min_dominance:
        raise DetectionFailure(f"no dominant hue in samples (best {best.to_hex()}, margin {best.dominance()})")
    return best


def detect_key_color(frame, cfg: AppConfig | None = None, default: Color | None = None) -> Color:
    """Best-guess key color for ``frame``; never raises."""
    cfg = cfg or AppConfig.default()
    if default is None:
        try:
            default = cfg.default_key_color()
        except ValueError:
            default = DEFAULT_KEY_COLOR

    try:
        samples = sample_corners(frame, cfg.detect.sample_w, cfg.detect.sample_h, cfg.detect.patch)
        color = pick_key_color(samples, cfg.detect.min_dominance)
    except DetectionFailure as exc:
        if cfg.verbose:
            print(f"🎯 Key color detection inconclusive ({exc}) → default {default.to_hex()}")
        return default

    if cfg.verbose:
        print(f"🎯 Key color detected: {color.to_hex()} (margin {color.dominance()})")
    return color
