from __future__ import annotations

import os
import sys
import threading
import time
from collections import deque
from queue import Queue

try:
    import psutil
except ImportError:
    psutil = None

MB = 1024 ** 2


def ram_mb() -> float:
    """Resident memory of this process in MB (peak RSS without psutil)."""
    if psutil is not None:
        return psutil.Process(os.getpid()).memory_info().rss / MB
    import resource
    # ru_maxrss is KB on Linux
    return resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024.0


class Timer:
    """Wall-clock a block; prints on exit when verbose."""

    def __init__(self, name, verbose=True):
        self.name = name
        self.verbose = verbose
        self.elapsed = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, *_):
        self.elapsed = time.perf_counter() - self._t0
        if self.verbose:
            print(f"⏱️ {self.name}: {self.elapsed:.3f}s")


class PerfCounter:
    """Frame counter with an overall and a sliding-window frame rate."""

    def __init__(self, window: int = 60):
        self.frames = 0
        self.t0: float | None = None
        self.t1: float | None = None
        self._recent: deque[float] = deque(maxlen=window)

    def start(self):
        self.t0 = time.perf_counter()
        self._recent.append(self.t0)

    def tick(self, n=1):
        self.frames += n
        self._recent.append(time.perf_counter())

    def stop(self):
        self.t1 = time.perf_counter()

    def avg_fps(self) -> float:
        if self.t0 is None:
            return 0.0
        end = self.t1 if self.t1 is not None else time.perf_counter()
        return self.frames / max(end - self.t0, 1e-9)

    def recent_fps(self) -> float:
        if len(self._recent) < 2:
            return 0.0
        return (len(self._recent) - 1) / max(self._recent[-1] - self._recent[0], 1e-9)


def _gauge(fraction: float, width: int) -> str:
    filled = round(max(0.0, min(fraction, 1.0)) * width)
    return "▕" + "■" * filled + " " * (width - filled) + "▏"


def format_stage_telemetry(
    stage: str,
    frame_index: int,
    fps: float,
    q: Queue | None = None,
    *,
    total_frames: int | None = None,
    frame_bytes: int = 0,
    extra: str | None = None,
) -> str:
    """One status line: stage, frames, rate, queue fill and memory."""
    parts = [f"{stage:<22}"]
    if total_frames:
        parts.append(f"{_gauge(frame_index / total_frames, 16)} {frame_index:>6}/{total_frames}")
    else:
        parts.append(f"frame {frame_index:>6}")
    parts.append(f"{fps:6.1f} fps")
    if frame_bytes:
        parts.append(f"{frame_bytes / MB:5.2f} MB/frame")
    if q is not None and q.maxsize > 0:
        depth = q.qsize()
        parts.append(f"buffer {_gauge(depth / q.maxsize, 8)} {depth}/{q.maxsize}")
    parts.append(f"RAM {ram_mb():.0f} MB")
    if extra:
        parts.append(extra)
    return " | ".join(parts)


class TelemetryBoard:
    """Keeps one line per pipeline stage and redraws them in place."""

    def __init__(self, stream=None):
        self._stream = stream
        self._lock = threading.Lock()
        self._stages: dict[str, str] = {}
        self._drawn = 0

    def update(self, stage: str, line: str):
        with self._lock:
            self._stages[stage] = line
            out = self._stream or sys.stdout
            # move back over the previous block before redrawing it
            if self._drawn:
                out.write(f"\x1b[{self._drawn}F")
            for text in self._stages.values():
                out.write(f"\x1b[2K{text}\n")
            out.flush()
            self._drawn = len(self._stages)

    def reset(self):
        with self._lock:
            self._stages.clear()
            self._drawn = 0


telemetry_board = TelemetryBoard()


def log_stage_telemetry(stage: str, frame_index: int, fps: float, **kwargs):
    telemetry_board.update(stage, format_stage_telemetry(stage, frame_index, fps, **kwargs))
