"""Deferred single-shot actions, used for auto-playing the recorded opponent reply."""

import logging
import threading
from typing import Callable, Protocol

_log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        def run() -> None:
            try:
                callback()
            except Exception:
                _log.exception("Scheduled callback %s failed", getattr(callback, "__name__", repr(callback)))

        timer = threading.Timer(max(0.0, delay), run)
        timer.daemon = True
        timer.start()
        return timer
