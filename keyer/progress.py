import threading

from .types import ProgressEvent


class ProgressChannel:
    """Latest-wins progress mailbox between a job and one consumer.

    ``publish`` never blocks: an intermediate event replaces any event the
    consumer has not picked up yet. The terminal event is kept apart, so it
    is always delivered, after the last pending intermediate one.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._pending: ProgressEvent | None = None
        self._terminal: ProgressEvent | None = None
        self._terminal_sent = False
        self.published = 0
        self.coalesced = 0

    def publish(self, event: ProgressEvent):
        with self._cond:
            self.published += 1
            if event.terminal:
                if self._terminal is None:
                    self._terminal = event
            elif self._terminal is None:
                if self._pending is not None:
                    self.coalesced += 1
                self._pending = event
            self._cond.notify_all()

    def _ready(self) -> bool:
        return self._pending is not None or (self._terminal is not None and not self._terminal_sent)

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        """Next event, or None on timeout / once the terminal event was consumed."""
        with self._cond:
            if self._terminal_sent:
                return None
            if not self._cond.wait_for(self._ready, timeout=timeout):
                return None
            if self._pending is not None:
                event, self._pending = self._pending, None
                return event
            self._terminal_sent = True
            return self._terminal

    @property
    def last_terminal(self) -> ProgressEvent | None:
        with self._cond:
            return self._terminal

    def __iter__(self):
        while True:
            event = self.get()
            if event is None:
                return
            yield event
            if event.terminal:
                return
