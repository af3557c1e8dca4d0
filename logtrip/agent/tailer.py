"""
logtrip.agent.tailer
====================
Non-blocking line reader over a growing log file.

- `Tailer.open(start_at_end)`: open the path; in tail mode, skip what is there.
- `Tailer.read_line()`: next complete line, or None when no new data exists.
- `Tailer.maybe_reopen(now, interval, floor)`: periodic close + reopen at EOF,
  which is how a file replaced by logrotate gets picked up.

Lines appended between the last read and a reopen are never read. That loss
is accepted: a reopen always starts at the end of the file it finds.
"""

import os
import time

from .logging import emit_ops

# Drop a partial line that grows past this without a newline.
MAX_PARTIAL = 1024 * 1024


def reopen_enabled(interval: float, floor: float) -> bool:
    """Periodic reopen runs only for a non-zero interval above the floor."""
    return interval > 0 and interval > floor


class Tailer:
    def __init__(self, cfg, path: str, name: str = ""):
        self.cfg = cfg
        self.path = str(path)
        self.name = name
        self.opened_at = 0.0
        self._fh = None
        self._partial = b""

    def open(self, start_at_end: bool = True, now: float | None = None) -> None:
        """(Re)open the file. Raises OSError if it cannot be opened."""
        reopening = self._fh is not None
        if reopening:
            emit_ops(self.cfg, "INFO", "tailer", "file_close", {"pattern": self.name, "path": self.path})
            self.close()

        fh = open(self.path, "rb")
        size = None
        if start_at_end:
            size = fh.seek(0, os.SEEK_END)
        self._fh = fh
        self._partial = b""
        self.opened_at = time.time() if now is None else now
        emit_ops(self.cfg, "INFO", "tailer", "file_reopen" if reopening else "file_open",
                 {"pattern": self.name, "path": self.path, "tail": start_at_end, "offset": size or 0})

    @property
    def is_open(self) -> bool:
        return self._fh is not None

    def read_line(self) -> str | None:
        if self._fh is None:
            return None
        raw = self._fh.readline()
        if not raw:
            return None
        if not raw.endswith(b"\n"):
            # writer is mid-line; keep it until the newline shows up
            self._partial += raw
            if len(self._partial) > MAX_PARTIAL:
                emit_ops(self.cfg, "WARNING", "tailer", "partial_dropped",
                         {"pattern": self.name, "bytes": len(self._partial)})
                self._partial = b""
            return None
        line = self._partial + raw
        self._partial = b""
        return line.rstrip(b"\r\n").decode("utf-8", errors="replace")

    def reopen_due(self, now: float, interval: float, floor: float) -> bool:
        return reopen_enabled(interval, floor) and now - self.opened_at > interval

    def maybe_reopen(self, now: float, interval: float, floor: float) -> bool:
        """Reopen at EOF if the interval elapsed. Returns True if it reopened."""
        if not self.reopen_due(now, interval, floor):
            return False
        self.open(start_at_end=True, now=now)
        return True

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            finally:
                self._fh = None
