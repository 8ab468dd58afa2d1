from dataclasses import dataclass, field
import os

from .errors import ConfigurationError
from .types import AudioMode, Color, KeySettings


@dataclass
class PathConfig:
    input_path: str = "input.mp4"
    background_path: str | None = None
    out_video: str = "keyed_video.mp4"
    out_final: str = "keyed.mp4"


@dataclass
class KeyConfig:
    # None -> sample the key color from the footage
    color: str | None = None
    similarity: float = 0.127
    blend: float = 0.1
    edge_blur: int = 0


@dataclass
class DetectConfig:
    # ~1s into a 30 fps clip
    sample_frame: int = 30
    sample_w: int = 320
    sample_h: int = 240
    patch: int = 4
    min_dominance: int = 24
    default_color: str = "#00ff00"


@dataclass
class PipelineConfig:
    workers: int = 4
    max_buffer_frames: int = 8
    progress_every: int = 1
    background_end: str = "loop"  # loop | hold
    # frames a one-shot background may keep for looping
    background_cache_frames: int = 120
    telemetry_every: int = 150


@dataclass
class AudioConfig:
    mode: str = "foreground"
    target_sr: int = 48000


@dataclass
class OutputConfig:
    fps: float = 30.0
    # None -> alpha only when the output container can carry it (.webm)
    alpha: bool | None = None
    fill_color: str = "#000000"
    video_bitrate: str = "8M"
    crf: int = 18


@dataclass
class AppConfig:
    verbose: bool = True  # controls application logs
    verbose_lib: bool = False  # controls noisy third-party tools (ffmpeg, etc.)

    paths: PathConfig = field(default_factory=PathConfig)
    key: KeyConfig = field(default_factory=KeyConfig)
    detect: DetectConfig = field(default_factory=DetectConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @staticmethod
    def default() -> "AppConfig":
        return AppConfig()

    def apply_env(self):
        os.environ["ENABLE_PJRT_COMPATIBILITY"] = "1"
        if self.verbose:
            os.environ["JAX_DEBUG_NANS"] = "1"
            os.environ["JAX_TRACEBACK_FILTERING"] = "off"
        else:
            os.environ["JAX_TRACEBACK_FILTERING"] = "on"

    def key_settings(self) -> KeySettings:
        color = Color.from_hex(self.key.color) if self.key.color else None
        settings = KeySettings(
            key_color=color,
            similarity=float(self.key.similarity),
            blend=float(self.key.blend),
            edge_blur_radius=int(self.key.edge_blur),
        )
        settings.validate()
        return settings

    def audio_mode(self) -> AudioMode:
        return AudioMode.parse(self.audio.mode)

    def default_key_color(self) -> Color:
        return Color.from_hex(self.detect.default_color)

    def fill_color(self) -> Color:
        return Color.from_hex(self.output.fill_color)

    def validate(self):
        _check(self.pipeline.workers >= 1, "pipeline.workers must be >= 1")
        _check(self.pipeline.max_buffer_frames >= 1, "pipeline.max_buffer_frames must be >= 1")
        _check(self.pipeline.progress_every >= 1, "pipeline.progress_every must be >= 1")
        _check(self.pipeline.telemetry_every >= 1, "pipeline.telemetry_every must be >= 1")
        _check(self.pipeline.background_end in ("loop", "hold"), "pipeline.background_end must be 'loop' or 'hold'")
        _check(self.pipeline.background_cache_frames >= 0, "pipeline.background_cache_frames must be >= 0")
        _check(self.detect.sample_frame >= 0, "detect.sample_frame must be >= 0")
        _check(self.detect.sample_w > 0 and self.detect.sample_h > 0, "detect sample size must be positive")
        _check(self.detect.patch >= 1, "detect.patch must be >= 1")
        _check(0 <= self.detect.min_dominance <= 255, "detect.min_dominance must be in [0, 255]")
        _check(self.audio.target_sr >= 8000, "audio.target_sr must be >= 8000")
        _check(self.output.fps > 0, "output.fps must be > 0")
        _check(0 <= self.output.crf <= 63, "output.crf must be in [0, 63]")
        self.key_settings()
        self.audio_mode()
        self.default_key_color()
        self.fill_color()


def _check(condition: bool, message: str):
    if not condition:
        raise ConfigurationError(message)


def settings_from_strength(strength: float, edge_blur: float = 0.0, color: str | None = "#00ff00") -> KeySettings:
    """Map the 0-100 "strength" and "edge blur" sliders onto KeySettings.

    strength 0 -> similarity 0.01, strength 100 -> similarity 0.4; edge blur
    is divided by ten into a pixel radius. Blend stays at 0.1, which keeps
    the spill correction mild.
    """
    if not 0.0 <= strength <= 100.0:
        raise ConfigurationError(f"strength must be in [0, 100], got {strength}")
    if not 0.0 <= edge_blur <= 100.0:
        raise ConfigurationError(f"edge_blur must be in [0, 100], got {edge_blur}")
    settings = KeySettings(
        key_color=Color.from_hex(color) if color else None,
        similarity=0.01 + (strength / 100.0) * 0.39,
        blend=0.1,
        edge_blur_radius=int(round(edge_blur / 10.0)),
    )
    settings.validate()
    return settings
