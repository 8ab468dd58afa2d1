import cv2
import numpy as np


def _box_kernel(radius: int) -> np.ndarray:
    size = 2 * radius + 1
    return np.full((size, 1), 1.0 / size, dtype=np.float32)


def refine_mask(mask: np.ndarray, radius: int) -> np.ndarray:
    """Separable box blur of the keying mask.

    Radius 0 returns the mask untouched. Radii larger than the frame are
    clamped per axis so a tiny frame with a huge radius still works.
    """
    if radius <= 0:
        return mask

    h, w = mask.shape[:2]
    rx = min(int(radius), max(w - 1, 0))
    ry = min(int(radius), max(h - 1, 0))
    if rx == 0 and ry == 0:
        return mask

    blurred = cv2.sepFilter2D(
        mask.astype(np.float32),
        cv2.CV_32F,
        _box_kernel(rx),
        _box_kernel(ry),
        borderType=cv2.BORDER_REPLICATE,
    )
    return np.clip(blurred, 0.0, 1.0)
