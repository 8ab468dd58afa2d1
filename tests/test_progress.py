import threading

from keyer.progress import ProgressChannel
from keyer.types import JobState, ProgressEvent


def _running(n: int, total: int | None = 10) -> ProgressEvent:
    return ProgressEvent(n, total, JobState.RUNNING)


def test_intermediate_events_are_coalesced() -> None:
    channel = ProgressChannel()
    for n in (1, 2, 3):
        channel.publish(_running(n))
    assert channel.get(timeout=0).frames_done == 3
    assert channel.coalesced == 2
    assert channel.get(timeout=0) is None


def test_terminal_event_is_always_delivered_last() -> None:
    channel = ProgressChannel()
    channel.publish(_running(4))
    channel.publish(ProgressEvent(5, 10, JobState.CANCELLED))
    channel.publish(_running(6))
    channel.publish(ProgressEvent(6, 10, JobState.COMPLETED))

    events = list(channel)
    assert [e.frames_done for e in events] == [4, 5]
    assert events[-1].state is JobState.CANCELLED
    assert channel.last_terminal.state is JobState.CANCELLED
    assert channel.get(timeout=0) is None


def test_consumer_blocks_until_published() -> None:
    channel = ProgressChannel()
    timer = threading.Timer(0.05, channel.publish, args=(ProgressEvent(3, 3, JobState.COMPLETED),))
    timer.start()
    event = channel.get(timeout=5)
    timer.join()
    assert event is not None and event.terminal


def test_percent_stays_below_100_until_completed() -> None:
    assert _running(10).percent == 99.0
    assert _running(5).percent == 50.0
    assert _running(5, total=None).percent == 0.0
    assert ProgressEvent(10, 10, JobState.COMPLETED).percent == 100.0
    assert ProgressEvent(7, None, JobState.COMPLETED).fraction is None
