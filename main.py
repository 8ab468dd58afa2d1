import argparse
import os
import tempfile

from keyer.config import AppConfig
from keyer.diagnostics import print_env_diagnostics
from keyer.encode import mux_audio
from keyer.io_audio import load_audio_stereo_ffmpeg
from keyer.io_background import VIDEO_EXTS, open_background
from keyer.io_video import iter_video_frames, probe_video
from keyer.pipeline import KeyingJob
from keyer.sinks import FfmpegSink
from keyer.stats import Timer
from keyer.types import AudioMode, JobState, ProcessingJob


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Chroma-key a video over a new background.")
    p.add_argument("input", help="foreground video (green/blue screen)")
    p.add_argument("output", help="output file (.webm keeps transparency, anything else is opaque)")
    p.add_argument("--background", help="background image or video")
    p.add_argument("--color", help="key color as #rrggbb (auto-detected when omitted)")
    p.add_argument("--similarity", type=float)
    p.add_argument("--blend", type=float)
    p.add_argument("--edge-blur", type=int)
    p.add_argument("--audio", choices=[m.value for m in AudioMode])
    p.add_argument("--hold-background", action="store_true", help="hold the last background frame instead of looping")
    p.add_argument("--workers", type=int)
    p.add_argument("--quiet", action="store_true")
    return p.parse_args(argv)


def build_config(args) -> AppConfig:
    cfg = AppConfig.default()
    cfg.verbose = not args.quiet
    cfg.paths.input_path = args.input
    cfg.paths.background_path = args.background
    cfg.paths.out_final = args.output
    if args.color:
        cfg.key.color = args.color
    if args.similarity is not None:
        cfg.key.similarity = args.similarity
    if args.blend is not None:
        cfg.key.blend = args.blend
    if args.edge_blur is not None:
        cfg.key.edge_blur = args.edge_blur
    if args.audio:
        cfg.audio.mode = args.audio
    if args.hold_background:
        cfg.pipeline.background_end = "hold"
    if args.workers:
        cfg.pipeline.workers = args.workers
    return cfg


def main(argv=None):
    args = parse_args(argv)
    cfg = build_config(args)
    cfg.apply_env()
    cfg.validate()

    info = probe_video(cfg.paths.input_path)
    if info.fps > 0:
        cfg.output.fps = info.fps

    print_env_diagnostics(cfg)

    mode = cfg.audio_mode()
    with Timer("audio decode", verbose=cfg.verbose):
        fg_audio = None
        bg_audio = None
        if mode in (AudioMode.FOREGROUND, AudioMode.MIX):
            fg_audio = load_audio_stereo_ffmpeg(cfg.paths.input_path, cfg.audio.target_sr, verbose=cfg.verbose_lib)
        bg_path = cfg.paths.background_path
        if bg_path and bg_path.lower().endswith(VIDEO_EXTS) and mode in (AudioMode.BACKGROUND, AudioMode.MIX):
            bg_audio = load_audio_stereo_ffmpeg(bg_path, cfg.audio.target_sr, verbose=cfg.verbose_lib)

    ext = os.path.splitext(cfg.paths.out_final)[1] or ".mp4"
    fd, tmp_video = tempfile.mkstemp(prefix="keyed_", suffix=ext)
    os.close(fd)
    cfg.paths.out_video = tmp_video

    sink = FfmpegSink(
        cfg.paths.out_video,
        fps=cfg.output.fps,
        alpha=cfg.output.alpha,
        crf=cfg.output.crf,
        video_bitrate=cfg.output.video_bitrate,
        verbose_lib=cfg.verbose_lib,
    )
    job = ProcessingJob(
        foreground_frames=iter_video_frames(cfg.paths.input_path),
        settings=cfg.key_settings(),
        sink=sink,
        background=open_background(
            cfg.paths.background_path,
            cfg.pipeline.background_end,
            cfg.pipeline.background_cache_frames,
        ),
        audio_mode=mode,
        total_frames=info.frame_count,
        foreground_audio=fg_audio,
        background_audio=bg_audio,
    )

    runner = KeyingJob(job, cfg)
    try:
        runner.start()
        with Timer("video keying", verbose=cfg.verbose):
            for event in runner.progress:
                if cfg.verbose and not event.terminal and event.frames_done % 30 == 0:
                    print(f"\r📼 {event.percent:5.1f}% | frames {event.frames_done}/{event.total_frames or '?'}", end="", flush=True)
            result = runner.wait()
        if cfg.verbose:
            print()

        if result.state is JobState.FAILED:
            raise SystemExit(f"❌ keying failed: {result.error}")
        if result.state is JobState.CANCELLED:
            print(f"⏹️ cancelled after {result.frames_done} frames, keeping the partial output")

        with Timer("mux audio", verbose=cfg.verbose):
            mux_audio(cfg.paths.out_video, result.audio, cfg.paths.out_final, verbose=cfg.verbose_lib)
    except KeyboardInterrupt:
        runner.cancel()
        runner.wait()
        raise
    finally:
        if os.path.exists(tmp_video):
            os.remove(tmp_video)

    print(f"✅ FINAL OK → {cfg.paths.out_final} (key {result.key_color.to_hex()})")


if __name__ == "__main__":
    main()
