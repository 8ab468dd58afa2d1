import subprocess

import numpy as np

from .types import AudioChunk


def has_audio_stream(path: str) -> bool:
    cmd = [
        "ffprobe", "-v", "error",
        "-select_streams", "a",
        "-show_entries", "stream=index",
        "-of", "csv=p=0",
        path,
    ]
    p = subprocess.run(cmd, stdout=subprocess.PIPE, check=True)
    return bool(p.stdout.strip())


def load_audio_stereo_ffmpeg(path: str, target_sr: int, verbose: bool, max_seconds: float | None = None) -> AudioChunk | None:
    """Decode the first audio stream as stereo float32, or None if there is none."""
    if not has_audio_stream(path):
        return None

    cmd = ["ffmpeg", "-v", "info" if verbose else "error"]
    if max_seconds is not None:
        cmd.extend(["-t", str(max_seconds)])
    cmd.extend([
        "-i", path,
        "-vn",
        "-ac", "2",
        "-ar", str(target_sr),
        "-f", "f32le",
        "pipe:1"
    ])
    p = subprocess.run(cmd, stdout=subprocess.PIPE, check=True)
    audio = np.frombuffer(p.stdout, dtype=np.float32).reshape((-1, 2))
    return AudioChunk(samples=audio, sample_rate=target_sr)
