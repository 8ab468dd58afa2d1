import os

import cv2

from .background import BackgroundSource, NoBackground, StaticImageBackground, VideoBackground
from .errors import ConfigurationError
from .io_video import iter_video_frames

VIDEO_EXTS = (".mp4", ".mov", ".avi", ".mkv", ".webm")


def load_background_image(path: str):
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        raise ConfigurationError(f"background image not found or unreadable: {path}")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def open_background(path: str | None, end_policy: str = "loop", max_cached: int = 120) -> BackgroundSource:
    """Image or video background from a path, picked by extension.

    Videos are decoded again from the start each time they loop.
    """
    if not path:
        return NoBackground()
    if not os.path.exists(path):
        raise ConfigurationError(f"background not found: {path}")
    if path.lower().endswith(VIDEO_EXTS):
        return VideoBackground(lambda: iter_video_frames(path), end_policy=end_policy, max_cached=max_cached)
    return StaticImageBackground(load_background_image(path))
