import numpy as np
import pytest

from keyer.audio import check_audio, mix_audio
from keyer.errors import ConfigurationError
from keyer.types import AudioChunk, AudioMode


def _chunk(value: float, n: int = 8, channels: int = 2, sr: int = 48000) -> AudioChunk:
    return AudioChunk(samples=np.full((n, channels), value, dtype=np.float32), sample_rate=sr)


def test_none_mode_is_silent() -> None:
    assert mix_audio(AudioMode.NONE, _chunk(0.1), _chunk(0.2)) is None


def test_single_stream_modes_pass_through() -> None:
    fg, bg = _chunk(0.1), _chunk(0.2)
    assert mix_audio(AudioMode.FOREGROUND, fg, bg) is fg
    assert mix_audio(AudioMode.BACKGROUND, fg, bg) is bg
    assert mix_audio(AudioMode.FOREGROUND, None, bg) is None
    assert mix_audio(AudioMode.BACKGROUND, fg, None) is None


def test_mix_with_one_stream_absent_passes_the_other() -> None:
    fg, bg = _chunk(0.1), _chunk(0.2)
    assert mix_audio(AudioMode.MIX, fg, None) is fg
    assert mix_audio(AudioMode.MIX, None, bg) is bg
    assert mix_audio(AudioMode.MIX, None, None) is None


def test_mix_sums_streams() -> None:
    out = mix_audio("mix", _chunk(0.25), _chunk(0.25))
    assert out.sample_rate == 48000
    assert np.allclose(out.samples, 0.5)


def test_mix_normalizes_clipping_peaks() -> None:
    out = mix_audio(AudioMode.MIX, _chunk(0.8), _chunk(0.8))
    assert np.max(np.abs(out.samples)) == pytest.approx(1.0)


def test_mix_pads_shorter_stream() -> None:
    out = mix_audio(AudioMode.MIX, _chunk(0.1, n=4), _chunk(0.2, n=10))
    assert out.samples.shape == (10, 2)
    assert np.allclose(out.samples[:4], 0.3)
    assert np.allclose(out.samples[4:], 0.2)


def test_mono_is_spread_over_stereo() -> None:
    mono = AudioChunk(samples=np.full(6, 0.1, dtype=np.float32), sample_rate=48000)
    out = mix_audio(AudioMode.MIX, mono, _chunk(0.2, n=6))
    assert out.samples.shape == (6, 2)
    assert np.allclose(out.samples, 0.3)


def test_sample_rate_mismatch_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        mix_audio(AudioMode.MIX, _chunk(0.1, sr=44100), _chunk(0.1, sr=48000))
    with pytest.raises(ConfigurationError):
        check_audio(AudioMode.MIX, _chunk(0.1, sr=44100), _chunk(0.1, sr=48000))
    # only MIX reads both streams
    check_audio(AudioMode.FOREGROUND, _chunk(0.1, sr=44100), _chunk(0.1, sr=48000))


def test_incompatible_channel_layouts_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        check_audio(AudioMode.MIX, _chunk(0.1, channels=2), _chunk(0.1, channels=6))


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        mix_audio("karaoke", _chunk(0.1), None)
