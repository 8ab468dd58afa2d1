import shutil
import subprocess

import numpy as np

from .types import AudioChunk


def mux_audio(in_video: str, audio: AudioChunk | None, out_path: str, verbose: bool):
    """Attach the mixed audio to the encoded video; no audio -> plain copy."""
    if audio is None:
        shutil.copyfile(in_video, out_path)
        return

    samples = np.asarray(audio.samples, dtype=np.float32)
    channels = 1 if samples.ndim == 1 else samples.shape[1]
    codec = ["-c:a", "libopus", "-b:a", "192k"] if out_path.lower().endswith(".webm") else ["-c:a", "aac", "-b:a", "192k"]

    cmd = ["ffmpeg", "-y"]
    if not verbose:
        cmd.extend(["-v", "error"])
    cmd.extend([
        "-i", in_video,
        "-f", "f32le",
        "-ar", str(audio.sample_rate),
        "-ac", str(channels),
        "-i", "pipe:0",
        "-map", "0:v",
        "-map", "1:a",
        "-c:v", "copy",
        *codec,
        "-shortest",
        out_path,
    ])
    subprocess.run(cmd, input=np.ascontiguousarray(samples).tobytes(), check=True)
