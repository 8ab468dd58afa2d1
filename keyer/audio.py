import numpy as np

from .errors import ConfigurationError
from .types import AudioChunk, AudioMode


def _as_2d(samples: np.ndarray) -> np.ndarray:
    s = np.asarray(samples, dtype=np.float32)
    if s.ndim == 1:
        return s[:, None]
    if s.ndim != 2:
        raise ConfigurationError(f"audio samples must be (n,) or (n, channels), got {s.shape}")
    return s


def check_audio(mode: AudioMode, foreground: AudioChunk | None, background: AudioChunk | None):
    """Pre-flight check for the streams the mixer will actually read."""
    for name, chunk in (("foreground", foreground), ("background", background)):
        if chunk is None:
            continue
        if chunk.sample_rate <= 0:
            raise ConfigurationError(f"{name} audio has an invalid sample rate: {chunk.sample_rate}")
        _as_2d(chunk.samples)

    if mode is AudioMode.MIX and foreground is not None and background is not None:
        if foreground.sample_rate != background.sample_rate:
            raise ConfigurationError(
                f"cannot mix {foreground.sample_rate} Hz with {background.sample_rate} Hz audio"
            )
        a, b = foreground.channels, background.channels
        if a != b and 1 not in (a, b):
            raise ConfigurationError(f"cannot mix {a}-channel audio with {b}-channel audio")


def _mix(foreground: AudioChunk, background: AudioChunk) -> AudioChunk:
    a = _as_2d(foreground.samples)
    b = _as_2d(background.samples)

    channels = max(a.shape[1], b.shape[1])
    if a.shape[1] != channels:
        a = np.repeat(a, channels, axis=1)
    if b.shape[1] != channels:
        b = np.repeat(b, channels, axis=1)

    n = max(a.shape[0], b.shape[0])
    mixed = np.zeros((n, channels), dtype=np.float32)
    mixed[: a.shape[0]] += a
    mixed[: b.shape[0]] += b

    peak = float(np.max(np.abs(mixed))) if mixed.size else 0.0
    if peak > 1.0:
        mixed /= peak
    return AudioChunk(samples=mixed, sample_rate=foreground.sample_rate)


def mix_audio(mode: AudioMode, foreground: AudioChunk | None = None, background: AudioChunk | None = None) -> AudioChunk | None:
    """Single output stream for ``mode``; None stands for silence / no stream."""
    mode = AudioMode.parse(mode)
    if mode is AudioMode.NONE:
        return None
    if mode is AudioMode.FOREGROUND:
        return foreground
    if mode is AudioMode.BACKGROUND:
        return background

    if foreground is None:
        return background
    if background is None:
        return foreground
    check_audio(mode, foreground, background)
    return _mix(foreground, background)
