"""Ring buffer of recent log lines, fed from the LogBus.

The web server installs one tail per plugin instance so `/api/logs` and the
info page can show what the feed pipeline has been doing.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable

from audiofeed.core.log_bus import LogRecord, get_log_bus

MAX_RECORDS = 2000


class LogTail:
    def __init__(self, max_records: int = MAX_RECORDS) -> None:
        self.max_records = max_records
        self._lock = threading.Lock()
        self._records: deque[tuple[int, str]] = deque(maxlen=max_records)
        self._next_id = 1
        self._unsubscribe: Callable[[], None] | None = None

    def install(self) -> None:
        """Subscribe to the LogBus. Calling twice is a no-op."""
        if self._unsubscribe is None:
            self._unsubscribe = get_log_bus().subscribe_all(self._on_record)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_record(self, record: LogRecord) -> None:
        line = (record.plain or "").rstrip("\n")
        with self._lock:
            eid = self._next_id
            self._next_id += 1
            self._records.append((eid, line))

    def _clamp(self, n: int) -> int:
        return min(max(int(n), 1), self.max_records)

    def snapshot(self, since_id: int = 0, limit: int = 200) -> list[tuple[int, str]]:
        """Return up to `limit` records with id > since_id, newest last."""
        limit = self._clamp(limit)
        with self._lock:
            items = [(eid, line) for (eid, line) in self._records if eid > since_id]
        return items[-limit:]

    def tail_text(self, lines: int = 200) -> str:
        """Last `lines` records as one newline-terminated string."""
        n = self._clamp(lines)
        with self._lock:
            items = list(self._records)[-n:]
        txt = "\n".join(line for _eid, line in items)
        return txt + ("\n" if txt else "")
