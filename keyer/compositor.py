import cv2
import numpy as np

from .types import BLACK, Color, SinkKind


def scale_to(frame: np.ndarray, w: int, h: int) -> np.ndarray:
    """Resize ``frame`` to (w, h); the foreground size always wins."""
    fh, fw = frame.shape[:2]
    if (fw, fh) == (w, h):
        return frame
    interpolation = cv2.INTER_AREA if fw * fh > w * h else cv2.INTER_LINEAR
    return cv2.resize(frame, (w, h), interpolation=interpolation)


def composite_frame(fg_rgb_u8: np.ndarray, mask: np.ndarray, bg_rgb_u8: np.ndarray) -> np.ndarray:
    """out = fg * (1 - w) + bg * w, per channel."""
    h, w = fg_rgb_u8.shape[:2]
    bg = scale_to(bg_rgb_u8[..., :3], w, h)

    fg = fg_rgb_u8.astype(np.float32)
    weight = mask.astype(np.float32)[..., None]
    frame = fg + (bg.astype(np.float32) - fg) * weight
    return np.clip(np.rint(frame), 0, 255).astype(np.uint8)


class OpaqueCompositor:
    """RGB output for sinks without an alpha channel."""

    kind = SinkKind.OPAQUE

    def __init__(self, fill: Color = BLACK):
        self.fill = fill

    def __call__(self, fg_rgb_u8: np.ndarray, mask: np.ndarray, bg_rgb_u8: np.ndarray | None) -> np.ndarray:
        if bg_rgb_u8 is None:
            h, w = fg_rgb_u8.shape[:2]
            bg_rgb_u8 = np.empty((h, w, 3), dtype=np.uint8)
            bg_rgb_u8[:] = self.fill.as_tuple()
        return composite_frame(fg_rgb_u8, mask, bg_rgb_u8)


class AlphaCompositor:
    """RGBA output. Without a background the keyed area becomes transparent."""

    kind = SinkKind.ALPHA

    def __call__(self, fg_rgb_u8: np.ndarray, mask: np.ndarray, bg_rgb_u8: np.ndarray | None) -> np.ndarray:
        h, w = fg_rgb_u8.shape[:2]
        out = np.empty((h, w, 4), dtype=np.uint8)
        if bg_rgb_u8 is None:
            out[..., :3] = fg_rgb_u8
            out[..., 3] = np.clip(np.rint((1.0 - mask) * 255.0), 0, 255).astype(np.uint8)
        else:
            out[..., :3] = composite_frame(fg_rgb_u8, mask, bg_rgb_u8)
            out[..., 3] = 255
        return out


def build_compositor(kind: SinkKind, fill: Color = BLACK):
    if kind is SinkKind.ALPHA:
        return AlphaCompositor()
    return OpaqueCompositor(fill)
