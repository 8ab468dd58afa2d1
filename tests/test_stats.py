import io
from queue import Queue

from keyer.stats import PerfCounter, TelemetryBoard, Timer, format_stage_telemetry, ram_mb


def test_timer_records_elapsed() -> None:
    with Timer("noop", verbose=False) as t:
        pass
    assert t.elapsed >= 0.0


def test_perf_counter_rates() -> None:
    perf = PerfCounter(window=4)
    assert perf.avg_fps() == 0.0
    perf.start()
    for _ in range(10):
        perf.tick()
    perf.stop()
    assert perf.frames == 10
    assert perf.avg_fps() > 0.0
    assert perf.recent_fps() > 0.0


def test_stage_line_mentions_progress_and_buffer() -> None:
    q = Queue(4)
    q.put(1)
    line = format_stage_telemetry("keyer", 5, 12.5, q, total_frames=10, frame_bytes=1024 ** 2, extra="workers=2")
    assert "5/10" in line
    assert "12.5 fps" in line
    assert "1/4" in line
    assert "1.00 MB/frame" in line
    assert line.endswith("workers=2")
    assert ram_mb() > 0


def test_board_redraws_in_place() -> None:
    out = io.StringIO()
    board = TelemetryBoard(stream=out)
    board.update("a", "first")
    board.update("b", "second")
    board.update("a", "third")
    text = out.getvalue()
    assert text.count("\x1b[2F") == 1
    assert text.endswith("third\n\x1b[2Ksecond\n")
