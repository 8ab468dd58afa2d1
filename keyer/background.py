from __future__ import annotations

from typing import Callable, Iterable, Iterator, Sequence

import numpy as np

from .compositor import scale_to
from .errors import ConfigurationError

END_POLICIES = ("loop", "hold")


def check_background_frame(frame) -> np.ndarray:
    if not isinstance(frame, np.ndarray):
        raise ValueError(f"background frame must be an ndarray, got {type(frame).__name__}")
    if frame.ndim != 3 or frame.shape[2] not in (3, 4) or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise ValueError(f"unexpected background frame shape {frame.shape}")
    if frame.dtype != np.uint8:
        raise ValueError(f"unexpected background frame dtype {frame.dtype}")
    return frame[..., :3]


class BackgroundSource:
    """What goes behind the keyed pixels. One instance serves a single job."""

    def open(self):
        """Pre-flight check, raises ConfigurationError."""

    def next_frame(self, size: tuple[int, int] | None = None) -> np.ndarray | None:
        """Background for the next output frame. ``size`` is the foreground (w, h)."""
        raise NotImplementedError

    def close(self):
        """Release whatever ``open`` acquired."""

    def describe(self) -> str:
        return type(self).__name__


class NoBackground(BackgroundSource):
    """Keyed pixels get the compositor's solid fill (or transparency)."""

    def next_frame(self, size: tuple[int, int] | None = None) -> None:
        return None

    def describe(self) -> str:
        return "none"


class StaticImageBackground(BackgroundSource):
    """The same image behind every output frame (read-only, never mutated).

    When asked for another size the image is resized once and the result
    reused for the following frames.
    """

    def __init__(self, image: np.ndarray):
        self._raw = image
        self._frame: np.ndarray | None = None
        self._scaled: tuple[tuple[int, int], np.ndarray] | None = None

    def open(self):
        try:
            frame = np.array(check_background_frame(self._raw), copy=True)
        except ValueError as exc:
            raise ConfigurationError(f"invalid background image: {exc}") from exc
        frame.setflags(write=False)
        self._frame = frame
        self._scaled = None

    def next_frame(self, size: tuple[int, int] | None = None) -> np.ndarray:
        if self._frame is None:
            self.open()
        h, w = self._frame.shape[:2]
        if size is None or tuple(size) == (w, h):
            return self._frame
        size = (int(size[0]), int(size[1]))
        if self._scaled is None or self._scaled[0] != size:
            scaled = scale_to(self._frame, *size)
            scaled.setflags(write=False)
            self._scaled = (size, scaled)
        return self._scaled[1]

    def describe(self) -> str:
        h, w = self._raw.shape[:2] if isinstance(self._raw, np.ndarray) else (0, 0)
        return f"image {w}x{h}"


class VideoBackground(BackgroundSource):
    """One background frame per foreground frame.

    ``frames`` is a zero-argument callable returning a fresh iterator, a
    sequence, or a one-shot iterable. When the background runs out, ``loop``
    starts it over: callables are called again and sequences re-iterated,
    so nothing is kept in memory. A one-shot iterable can only loop over
    frames it kept, at most ``max_cached`` of them; a longer one holds its
    last frame instead. ``hold`` always repeats the last frame.
    """

    def __init__(self, frames, end_policy: str = "loop", max_cached: int = 120):
        if end_policy not in END_POLICIES:
            raise ConfigurationError(f"end_policy must be one of {END_POLICIES}, got {end_policy!r}")
        if max_cached < 0:
            raise ConfigurationError(f"max_cached must be >= 0, got {max_cached}")
        self.end_policy = end_policy
        self.max_cached = max_cached
        self._frames = frames
        if callable(frames):
            self._reopen: Callable[[], Iterable[np.ndarray]] | None = frames
        elif isinstance(frames, Sequence):
            self._reopen = lambda: frames
        else:
            self._reopen = None
        self._caching = end_policy == "loop" and self._reopen is None
        self._it: Iterator[np.ndarray] | None = None
        self._first: np.ndarray | None = None
        self._cache: list[np.ndarray] = []
        self._last: np.ndarray | None = None
        self._exhausted = False
        self._replay = 0
        self.frames_read = 0
        self.loops = 0

    @property
    def cached_frames(self) -> int:
        return len(self._cache)

    def _start(self) -> Iterator[np.ndarray]:
        return iter(self._reopen() if self._reopen is not None else self._frames)

    def _release(self):
        close = getattr(self._it, "close", None)
        if close is not None:
            close()

    def open(self):
        if self._it is not None:
            return
        self._it = self._start()
        try:
            first = next(self._it)
        except StopIteration:
            raise ConfigurationError("background video has no frames") from None
        try:
            check_background_frame(first)
        except ValueError as exc:
            raise ConfigurationError(f"invalid background video: {exc}") from exc
        self._first = first

    def _remember(self, frame: np.ndarray) -> np.ndarray:
        frame = check_background_frame(frame)
        frame.setflags(write=False)
        self.frames_read += 1
        self._last = frame
        if self._caching:
            if len(self._cache) < self.max_cached:
                self._cache.append(frame)
            else:
                # too long to keep around, hold the last frame at the end
                self._cache.clear()
                self._caching = False
        return frame

    def next_frame(self, size: tuple[int, int] | None = None) -> np.ndarray:
        if self._it is None:
            self.open()

        if self._first is not None:
            frame, self._first = self._first, None
            return self._remember(frame)

        if not self._exhausted:
            frame = next(self._it, None)
            if frame is None and self.end_policy == "loop" and self._reopen is not None:
                self._release()
                self._it = self._start()
                self.loops += 1
                frame = next(self._it, None)
            if frame is not None:
                return self._remember(frame)
            self._exhausted = True

        if self._cache:
            if self._replay % len(self._cache) == 0:
                self.loops += 1
            frame = self._cache[self._replay % len(self._cache)]
            self._replay += 1
            return frame
        return self._last

    def close(self):
        self._release()
        self._cache.clear()

    def describe(self) -> str:
        return f"video ({self.end_policy})"
