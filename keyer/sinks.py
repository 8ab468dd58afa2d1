import os
import subprocess

import numpy as np

from .types import JobState, SinkKind


class FrameSink:
    """Receives composited frames in order, then exactly one ``close``."""

    supports_alpha = False

    @property
    def kind(self) -> SinkKind:
        return SinkKind.ALPHA if self.supports_alpha else SinkKind.OPAQUE

    def check(self):
        """Pre-flight check, raises ConfigurationError."""

    def write(self, frame: np.ndarray):
        raise NotImplementedError

    def close(self, state: JobState):
        raise NotImplementedError


class ListSink(FrameSink):
    """Keeps frames in memory; ``complete`` tells whether the run finished."""

    def __init__(self, supports_alpha: bool = False, on_write=None):
        self.supports_alpha = supports_alpha
        self.frames: list[np.ndarray] = []
        self.state: JobState | None = None
        self._on_write = on_write

    def write(self, frame: np.ndarray):
        self.frames.append(frame)
        if self._on_write is not None:
            self._on_write(len(self.frames))

    def close(self, state: JobState):
        self.state = state

    @property
    def complete(self) -> bool:
        return self.state is JobState.COMPLETED


def is_webm(path: str) -> bool:
    return path.lower().endswith(".webm")


def wants_alpha(path: str) -> bool:
    """Only WebM/VP9 keeps an alpha plane; H.264 outputs get a solid fill."""
    return is_webm(path)


class FfmpegSink(FrameSink):
    """Pipes raw frames into ffmpeg (video only, audio is muxed afterwards).

    The container picks the codec (VP9 for .webm, H.264 otherwise) and alpha
    is only available with VP9. The encoder is spawned on the first frame,
    once the size is known. A FAILED close deletes the partial file;
    CANCELLED keeps the clean prefix.
    """

    def __init__(self, path: str, fps: float, alpha: bool | None = None,
                 crf: int = 18, video_bitrate: str = "8M", verbose_lib: bool = False):
        self.path = path
        self.fps = fps
        self.vp9 = is_webm(path)
        self.supports_alpha = self.vp9 if alpha is None else bool(alpha and self.vp9)
        self.crf = crf
        self.video_bitrate = video_bitrate
        self.verbose_lib = verbose_lib
        self.proc: subprocess.Popen | None = None
        self.written = 0
        self.state: JobState | None = None

    def _command(self, w: int, h: int) -> list[str]:
        loglevel = "info" if self.verbose_lib else "error"
        pix_in = "rgba" if self.supports_alpha else "rgb24"
        cmd = [
            "ffmpeg", "-y",
            "-loglevel", loglevel,
            "-f", "rawvideo",
            "-pix_fmt", pix_in,
            "-s", f"{w}x{h}",
            "-r", str(self.fps),
            "-i", "-",
            "-an",
        ]
        if self.vp9:
            cmd += [
                "-c:v", "libvpx-vp9",
                "-pix_fmt", "yuva420p" if self.supports_alpha else "yuv420p",
                "-b:v", self.video_bitrate,
                "-auto-alt-ref", "0",
                "-lag-in-frames", "0",
            ]
        else:
            cmd += [
                "-c:v", "libx264",
                "-pix_fmt", "yuv420p",
                "-preset", "veryfast",
                "-crf", str(self.crf),
            ]
        return cmd + [self.path]

    def _spawn(self, frame: np.ndarray):
        h, w = frame.shape[:2]
        try:
            self.proc = subprocess.Popen(self._command(w, h), stdin=subprocess.PIPE)
        except FileNotFoundError as exc:
            raise RuntimeError("ffmpeg not found on PATH") from exc
        if self.proc.stdin is None:
            raise RuntimeError("ffmpeg stdin unavailable")

    def write(self, frame: np.ndarray):
        if self.proc is None:
            self._spawn(frame)
        self.proc.stdin.write(np.ascontiguousarray(frame).tobytes())
        self.written += 1

    def close(self, state: JobState):
        self.state = state
        if self.proc is None:
            return
        if state is JobState.FAILED:
            self.proc.kill()
            self.proc.wait()
            if os.path.exists(self.path):
                os.remove(self.path)
            return
        self.proc.stdin.close()
        return_code = self.proc.wait()
        if return_code != 0:
            raise RuntimeError(f"ffmpeg exited with code {return_code}")
