import queue
import threading
import time
from queue import Queue
from typing import Iterable

import numpy as np

from .background import BackgroundSource
from .config import AppConfig
from .stats import log_stage_telemetry
from .types import FramePair, SourceFailure


def frame_size(frame) -> tuple[int, int] | None:
    """(w, h) of a frame, None when it is not an image array."""
    shape = getattr(frame, "shape", None)
    if shape is None or len(shape) < 2:
        return None
    return int(shape[1]), int(shape[0])


def close_iterator(it):
    close = getattr(it, "close", None)
    if close is not None:
        close()


def start_frame_source(
    cfg: AppConfig,
    frames: Iterable[np.ndarray],
    background: BackgroundSource,
    frame_out: Queue,
    stop_token: object,
    halt: threading.Event,
    total_frames: int | None = None,
) -> threading.Thread:
    """Pull foreground and background frames in lock-step into ``frame_out``.

    The bounded queue is the backpressure: when the keyer falls behind the
    source blocks, re-checking ``halt`` so a finished job never leaves it
    stuck. Input errors are forwarded as SourceFailure for the frame index
    they happened at. The foreground iterator is closed once the thread is
    done with it, early or not.
    """

    def _put(item) -> bool:
        while not halt.is_set():
            try:
                frame_out.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _run():
        try:
            it = iter(frames)
        except TypeError as exc:
            _put(SourceFailure(0, exc))
            return
        try:
            _pump(it)
        finally:
            close_iterator(it)

    def _pump(it):
        index = 0
        t0 = time.perf_counter()
        while not halt.is_set():
            try:
                fg = next(it)
            except StopIteration:
                break
            except Exception as exc:
                _put(SourceFailure(index, exc))
                return

            try:
                bg = background.next_frame(frame_size(fg))
            except Exception as exc:
                _put(SourceFailure(index, exc))
                return

            if not _put(FramePair(index=index, foreground=fg, background=bg)):
                return
            index += 1

            if cfg.verbose and index % cfg.pipeline.telemetry_every == 0:
                fps = index / max(time.perf_counter() - t0, 1e-6)
                log_stage_telemetry(
                    "📥 Source (producer)",
                    index,
                    fps,
                    q=frame_out,
                    total_frames=total_frames,
                    frame_bytes=int(getattr(fg, "nbytes", 0)),
                    extra=f"bg={background.describe()}",
                )

        _put(stop_token)

    t = threading.Thread(target=_run, name="frame_source", daemon=True)
    t.start()
    return t
