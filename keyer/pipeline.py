import threading
from collections.abc import Sized
from dataclasses import replace
from queue import Queue
from typing import Iterable, Iterator

import numpy as np

from .audio import check_audio, mix_audio
from .background import BackgroundSource, NoBackground
from .compositor import build_compositor
from .config import AppConfig
from .detect import detect_key_color
from .errors import CancellationRequested, ConfigurationError, FrameProcessingError
from .frame_keyer import FrameKeyer
from .pipeline_source import close_iterator, frame_size, start_frame_source
from .progress import ProgressChannel
from .sinks import FrameSink
from .stats import PerfCounter, Timer, log_stage_telemetry, ram_mb, telemetry_board
from .types import (
    AudioMode,
    JobResult,
    JobState,
    KeySettings,
    ProcessingJob,
    ProgressEvent,
    SinkKind,
    SourceFailure,
)

SOURCE_JOIN_TIMEOUT = 5.0

_TRANSITIONS = {
    JobState.IDLE: {JobState.DETECTING, JobState.RUNNING, JobState.FAILED, JobState.CANCELLED},
    JobState.DETECTING: {JobState.RUNNING, JobState.FAILED, JobState.CANCELLED},
    JobState.RUNNING: {JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED},
    JobState.COMPLETED: set(),
    JobState.FAILED: set(),
    JobState.CANCELLED: set(),
}


def _replay(buffered: list, failure: BaseException | None, rest: Iterator) -> Iterator[np.ndarray]:
    try:
        yield from buffered
        if failure is not None:
            raise failure
        yield from rest
    finally:
        close_iterator(rest)


def peek_frames(frames: Iterable[np.ndarray], index: int):
    """Frame ``index`` (or the last one if the stream is shorter) plus an
    iterator that still yields every frame, the peeked ones included."""
    it = iter(frames)
    buffered = []
    failure = None
    while len(buffered) <= index:
        try:
            buffered.append(next(it))
        except StopIteration:
            break
        except Exception as exc:
            failure = exc
            break
    sample = buffered[-1] if buffered else None
    return sample, _replay(buffered, failure, it)


def resolve_key_color(settings: KeySettings, frames: Iterable[np.ndarray], cfg: AppConfig):
    if settings.key_color is not None:
        return settings, frames
    sample, frames = peek_frames(frames, cfg.detect.sample_frame)
    return replace(settings, key_color=detect_key_color(sample, cfg)), frames


def iter_composited(
    frames: Iterable[np.ndarray],
    settings: KeySettings,
    background: BackgroundSource | None = None,
    sink_kind: SinkKind = SinkKind.OPAQUE,
    cfg: AppConfig | None = None,
) -> Iterator[np.ndarray]:
    """Lazily key ``frames`` in the caller's thread, one output per input."""
    cfg = cfg or AppConfig.default()
    settings.validate()
    background = background or NoBackground()
    background.open()
    settings, frames = resolve_key_color(settings, frames, cfg)

    try:
        with FrameKeyer(settings, build_compositor(sink_kind, cfg.fill_color()), cfg.pipeline.workers) as keyer:
            for index, frame in enumerate(frames):
                try:
                    out = keyer.process(frame, background.next_frame(frame_size(frame)))
                except Exception as exc:
                    raise FrameProcessingError(index, exc) from exc
                yield out
    finally:
        background.close()


class KeyingJob:
    """Runs one ProcessingJob on a worker thread.

    IDLE -> DETECTING (only without a key color) -> RUNNING ->
    COMPLETED | FAILED | CANCELLED. Progress goes through ``progress``;
    ``wait()`` returns the JobResult.
    """

    def __init__(self, job: ProcessingJob, cfg: AppConfig | None = None):
        self.job = job
        self.cfg = cfg or AppConfig.default()
        self.background = job.background if job.background is not None else NoBackground()
        self.progress = ProgressChannel()
        self.frames_done = 0
        self.total_frames = job.total_frames
        if self.total_frames is None and isinstance(job.foreground_frames, Sized):
            self.total_frames = len(job.foreground_frames)

        self._state = JobState.IDLE
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._thread: threading.Thread | None = None
        self._result: JobResult | None = None

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    def _transition(self, new: JobState):
        with self._lock:
            if new not in _TRANSITIONS[self._state]:
                raise RuntimeError(f"illegal job transition {self._state.value} -> {new.value}")
            self._state = new

    def _publish(self, error: BaseException | None = None):
        self.progress.publish(ProgressEvent(self.frames_done, self.total_frames, self.state, error))

    def preflight(self):
        job = self.job
        if not isinstance(job.settings, KeySettings):
            raise ConfigurationError("job settings must be KeySettings")
        job.settings.validate()
        if not isinstance(job.sink, FrameSink):
            raise ConfigurationError("job needs an output sink")
        job.sink.check()
        if not isinstance(self.background, BackgroundSource):
            raise ConfigurationError(f"unsupported background source: {type(self.background).__name__}")
        check_audio(AudioMode.parse(job.audio_mode), job.foreground_audio, job.background_audio)
        self.background.open()

    def start(self) -> "KeyingJob":
        if self._thread is not None:
            raise RuntimeError("job already started")
        self.cfg.validate()
        self.preflight()
        self._thread = threading.Thread(target=self._run, name="keying_job", daemon=True)
        self._thread.start()
        return self

    def cancel(self):
        self._cancel.set()

    def wait(self, timeout: float | None = None) -> JobResult | None:
        if self._thread is None:
            raise RuntimeError("job not started")
        if not self._done.wait(timeout):
            return None
        return self._result

    def run(self) -> JobResult:
        return self.start().wait()

    def _consume(self, keyer: FrameKeyer, q: Queue, stop_token: object):
        cfg = self.cfg
        sink = self.job.sink
        perf = PerfCounter()
        perf.start()

        while True:
            if self._cancel.is_set():
                raise CancellationRequested(self.frames_done)

            item = q.get()
            if item is stop_token:
                break
            if isinstance(item, SourceFailure):
                raise FrameProcessingError(item.index, item.cause) from item.cause

            try:
                out = keyer.process(item.foreground, item.background)
                sink.write(out)
            except Exception as exc:
                raise FrameProcessingError(item.index, exc) from exc

            self.frames_done += 1
            perf.tick(1)
            if self.frames_done % cfg.pipeline.progress_every == 0:
                self._publish()

            if cfg.verbose and self.frames_done % cfg.pipeline.telemetry_every == 0:
                log_stage_telemetry(
                    "🎬 Keyer (consumer)",
                    self.frames_done,
                    perf.recent_fps(),
                    q=q,
                    total_frames=self.total_frames,
                    frame_bytes=int(out.nbytes),
                    extra=f"workers={keyer.workers}",
                )

        perf.stop()
        if cfg.verbose:
            print("🚀 Keying performance")
            print(f"  frames keyed : {perf.frames}")
            print(f"  avg FPS      : {perf.avg_fps():.2f}")
            print(f"  RAM (now)    : {ram_mb():.0f} MB")

    def _run(self):
        cfg = self.cfg
        job = self.job
        halt = threading.Event()
        keyer = None
        source: threading.Thread | None = None
        settings = job.settings
        frames = job.foreground_frames
        audio = None
        error: BaseException | None = None
        final = JobState.FAILED

        try:
            if settings.key_color is None:
                self._transition(JobState.DETECTING)
                self._publish()
                with Timer("key color detection", verbose=cfg.verbose):
                    settings, frames = resolve_key_color(settings, frames, cfg)
                if self._cancel.is_set():
                    raise CancellationRequested(0)

            audio = mix_audio(job.audio_mode, job.foreground_audio, job.background_audio)

            self._transition(JobState.RUNNING)
            self._publish()

            compositor = build_compositor(job.sink.kind, cfg.fill_color())
            keyer = FrameKeyer(settings, compositor, cfg.pipeline.workers)
            q = Queue(cfg.pipeline.max_buffer_frames)
            stop_token = object()
            source = start_frame_source(cfg, frames, self.background, q, stop_token, halt, self.total_frames)

            if cfg.verbose:
                telemetry_board.reset()
                print(
                    f"🎨 Keying {settings.key_color.to_hex()} | similarity={settings.similarity:.3f}"
                    f" | blend={settings.blend:.3f} | blur={settings.edge_blur_radius}px"
                    f" | bg={self.background.describe()} | sink={job.sink.kind.value}"
                )
            self._consume(keyer, q, stop_token)
            final = JobState.COMPLETED
        except CancellationRequested as exc:
            final, error = JobState.CANCELLED, exc
        except Exception as exc:
            final, error = JobState.FAILED, exc
        finally:
            halt.set()
            if keyer is not None:
                keyer.close()
            if source is None:
                close_iterator(frames)
            else:
                source.join(timeout=SOURCE_JOIN_TIMEOUT)
            # a source still stuck in a read owns the background iterator
            if source is None or not source.is_alive():
                self.background.close()

        try:
            job.sink.close(final)
        except Exception as exc:
            if error is None:
                final, error = JobState.FAILED, exc

        try:
            self._transition(final)
            self._result = JobResult(
                state=final,
                frames_done=self.frames_done,
                total_frames=self.total_frames,
                key_color=settings.key_color,
                audio=audio if final is not JobState.FAILED else None,
                error=error,
            )
            self._publish(error)
            if cfg.verbose:
                icon = {JobState.COMPLETED: "✅", JobState.CANCELLED: "⏹️"}.get(final, "❌")
                detail = f" ({error})" if error else ""
                print(f"{icon} Job {final.value}: {self.frames_done} frames{detail}")
        finally:
            self._done.set()


def run_job(job: ProcessingJob, cfg: AppConfig | None = None) -> JobResult:
    """Blocking helper: start the job and wait for its result."""
    cfg = cfg or AppConfig.default()
    with Timer("keying job", verbose=cfg.verbose):
        return KeyingJob(job, cfg).run()
