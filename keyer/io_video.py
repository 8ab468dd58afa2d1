from dataclasses import dataclass
from typing import Iterator

import cv2
import numpy as np

from .errors import ConfigurationError


@dataclass
class VideoInfo:
    width: int
    height: int
    fps: float
    frame_count: int | None


def probe_video(path: str) -> VideoInfo:
    cap = cv2.VideoCapture(path)
    if not cap.isOpened():
        raise ConfigurationError(f"cannot open video: {path}")
    try:
        count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        return VideoInfo(
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=float(cap.get(cv2.CAP_PROP_FPS)) or 0.0,
            frame_count=count if count > 0 else None,
        )
    finally:
        cap.release()


def iter_video_frames(path: str) -> Iterator[np.ndarray]:
    """Decoded RGB frames, read lazily; the capture is released at the end."""
    cap = cv2.VideoCapture(path)
    if not cap.isOpened():
        raise ConfigurationError(f"cannot open video: {path}")
    try:
        while True:
            ok, frame_bgr = cap.read()
            if not ok:
                break
            yield cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    finally:
        cap.release()
