"""In-process LogBus for streaming log records to subscribers.

Subscribers are called synchronously from the logger. A failing subscriber
is reported on stderr and never breaks publishing.
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass

LogSubscriber = Callable[["LogRecord"], None]


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str
    message: str


class LogBus:
    def __init__(self) -> None:
        self._subscribers: list[LogSubscriber] = []

    def subscribe_all(self, cb: LogSubscriber) -> Callable[[], None]:
        """Register a subscriber; returns a callable that removes it."""
        self._subscribers.append(cb)
        return lambda: self.unsubscribe_all(cb)

    def unsubscribe_all(self, cb: LogSubscriber) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers.remove(cb)

    def publish(self, record: LogRecord) -> None:
        for cb in list(self._subscribers):
            try:
                cb(record)
            except Exception:
                # Never route through the core logger here (recursion).
                msg = "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
                with contextlib.suppress(Exception):
                    sys.stderr.write(msg)

    def clear(self) -> None:
        self._subscribers.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS
