import numpy as np

from .types import Color


def suppress_spill(frame_rgb_u8: np.ndarray, weights: np.ndarray, key_color: Color, blend: float) -> np.ndarray:
    """Pull the key hue out of partially keyed pixels.

    Only pixels with 0 < w < 1 are touched: their key-dominant channel is
    lowered toward the larger of the two other channels by ``blend`` times
    the excess. Returns a new array; the input frame is left as is.
    """
    k = key_color.dominant_channel()
    if blend <= 0.0 or k is None:
        return frame_rgb_u8.copy()

    partial = (weights > 0.0) & (weights < 1.0)
    if not np.any(partial):
        return frame_rgb_u8.copy()

    f = frame_rgb_u8.astype(np.float32)
    others = [c for c in range(3) if c != k]
    limit = np.maximum(f[..., others[0]], f[..., others[1]])
    excess = np.clip(f[..., k] - limit, 0.0, None)

    f[..., k] -= np.where(partial, excess * float(blend), 0.0)
    out = frame_rgb_u8.copy()
    out[partial] = np.clip(np.rint(f[partial]), 0, 255).astype(np.uint8)
    return out
