from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

import numpy as np

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .background import BackgroundSource
    from .sinks import FrameSink


@dataclass(frozen=True)
class Color:
    """8-bit RGB color."""

    r: int
    g: int
    b: int

    def __post_init__(self):
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ConfigurationError(f"color channel {name} must be an int, got {value!r}")
            if not 0 <= int(value) <= 255:
                raise ConfigurationError(f"color channel {name} out of range: {value}")
            object.__setattr__(self, name, int(value))

    @staticmethod
    def from_hex(text: str) -> "Color":
        """Parse ``#rrggbb``, ``rrggbb`` or ffmpeg-style ``0xrrggbb``."""
        raw = text.strip().lower()
        if raw.startswith("#"):
            raw = raw[1:]
        elif raw.startswith("0x"):
            raw = raw[2:]
        if len(raw) != 6:
            raise ConfigurationError(f"invalid hex color: {text!r}")
        try:
            value = int(raw, 16)
        except ValueError as exc:
            raise ConfigurationError(f"invalid hex color: {text!r}") from exc
        return Color((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def normalized(self) -> tuple[float, float, float]:
        return (self.r / 255.0, self.g / 255.0, self.b / 255.0)

    def dominant_channel(self) -> int | None:
        """Index of the channel strictly above both others, if any."""
        channels = self.as_tuple()
        top = max(range(3), key=lambda i: channels[i])
        others = [channels[i] for i in range(3) if i != top]
        if channels[top] > max(others):
            return top
        return None

    def dominance(self) -> int:
        channels = sorted(self.as_tuple())
        return channels[2] - channels[1]


DEFAULT_KEY_COLOR = Color(0, 255, 0)
BLACK = Color(0, 0, 0)


@dataclass(frozen=True)
class KeySettings:
    """Keying parameters. ``key_color=None`` asks the job to auto-detect it."""

    key_color: Color | None = DEFAULT_KEY_COLOR
    similarity: float = 0.127
    blend: float = 0.1
    edge_blur_radius: int = 0

    def validate(self):
        if self.key_color is not None and not isinstance(self.key_color, Color):
            raise ConfigurationError(f"key_color must be a Color, got {type(self.key_color).__name__}")
        if not 0.0 < float(self.similarity) <= 1.0:
            raise ConfigurationError(f"similarity must be in (0, 1], got {self.similarity}")
        if not 0.0 <= float(self.blend) <= 1.0:
            raise ConfigurationError(f"blend must be in [0, 1], got {self.blend}")
        radius = self.edge_blur_radius
        if isinstance(radius, bool) or not isinstance(radius, (int, np.integer)):
            raise ConfigurationError(f"edge_blur_radius must be an int, got {radius!r}")
        if radius < 0:
            raise ConfigurationError(f"edge_blur_radius must be >= 0, got {radius}")


class AudioMode(Enum):
    FOREGROUND = "foreground"
    BACKGROUND = "background"
    MIX = "mix"
    NONE = "none"

    @staticmethod
    def parse(value: "str | AudioMode") -> "AudioMode":
        if isinstance(value, AudioMode):
            return value
        try:
            return AudioMode(str(value).strip().lower())
        except ValueError as exc:
            choices = ", ".join(m.value for m in AudioMode)
            raise ConfigurationError(f"unknown audio mode {value!r} (expected one of: {choices})") from exc


class SinkKind(Enum):
    OPAQUE = "opaque"
    ALPHA = "alpha"


class JobState(Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED)


@dataclass
class AudioChunk:
    """Decoded audio, ``samples`` shaped (n_samples, channels) float32."""

    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return 1 if self.samples.ndim == 1 else int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.samples.shape[0] / float(self.sample_rate)


@dataclass
class FramePair:
    """Foreground frame and its lock-step background frame, handed to the keyer."""

    index: int
    foreground: np.ndarray
    background: np.ndarray | None


@dataclass
class SourceFailure:
    """Error raised while pulling frame ``index`` from an input stream."""

    index: int
    cause: BaseException


@dataclass(frozen=True)
class ProgressEvent:
    frames_done: int
    total_frames: int | None
    state: JobState
    error: BaseException | None = None

    @property
    def terminal(self) -> bool:
        return self.state.terminal

    @property
    def fraction(self) -> float | None:
        if not self.total_frames:
            return None
        return min(self.frames_done / self.total_frames, 1.0)

    @property
    def percent(self) -> float:
        if self.state is JobState.COMPLETED:
            return 100.0
        if self.fraction is None:
            return 0.0
        return min(self.fraction * 100.0, 99.0)


@dataclass
class ProcessingJob:
    """One keying run: inputs, settings and where the output goes."""

    foreground_frames: Iterable[np.ndarray]
    settings: KeySettings
    sink: "FrameSink"
    background: "BackgroundSource | None" = None
    audio_mode: AudioMode = AudioMode.FOREGROUND
    total_frames: int | None = None
    foreground_audio: AudioChunk | None = None
    background_audio: AudioChunk | None = None


@dataclass
class JobResult:
    state: JobState
    frames_done: int
    total_frames: int | None
    key_color: Color | None
    audio: AudioChunk | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.state is JobState.COMPLETED

    def as_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "frames_done": self.frames_done,
            "total_frames": self.total_frames,
            "key_color": self.key_color.to_hex() if self.key_color else None,
            "error": str(self.error) if self.error else None,
        }
