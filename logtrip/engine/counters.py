"""
logtrip.engine.counters
=======================
Sliding-window threshold counters, one per correlation key.

A key is (action ordinal, pattern name, token). Each record keeps at most
`threshold` timestamps: pushing onto a full buffer drops the oldest, so only
the most recent `threshold` events are ever considered. A record fires when
the buffer is full and its oldest timestamp is still inside the window.
After firing, the buffer is released and the key stays suppressed.

The store is shared by the monitor loop and the reaper thread; every access
to the key set or to a record goes through one lock.
"""

from collections import deque
from typing import NamedTuple, Optional
import threading


class CorrelationKey(NamedTuple):
    action: int
    pattern: str
    token: str


class FireDecision(NamedTuple):
    fire: bool
    token: str
    count: int  # timestamps held after this push
    suppressed: bool = False  # key already fired; nothing was recorded


class CounterRecord:
    __slots__ = ("capacity", "window", "timestamps", "fired", "fired_at")

    def __init__(self, capacity: int, window: float):
        self.capacity = capacity
        self.window = window
        self.timestamps = deque(maxlen=capacity)
        self.fired = False
        self.fired_at = None

    def push(self, ts: float) -> None:
        # deque(maxlen) evicts index 0 when full
        self.timestamps.append(ts)

    def can_fire(self, now: float) -> bool:
        if self.fired or len(self.timestamps) < self.capacity:
            return False
        # inclusive: threshold events spanning exactly `window` seconds fire
        return self.timestamps[0] >= now - self.window

    def mark_fired(self, now: float) -> None:
        self.fired = True
        self.fired_at = now
        self.timestamps = None

    def newest(self) -> Optional[float]:
        if not self.timestamps:
            return None
        return self.timestamps[-1]

    def is_stale(self, now: float) -> bool:
        """True when nothing held can contribute to a fire any more."""
        if self.fired:
            return False
        newest = self.newest()
        return newest is None or newest < now - self.window


class CounterStore:

    def __init__(self, forget_fired_after: float = 0):
        self._lock = threading.Lock()
        self._records = {}
        self.forget_fired_after = forget_fired_after

    def record(self, action, pattern_name: str, token: str, now: float) -> FireDecision:
        key = CorrelationKey(action.ordinal, pattern_name, token)
        with self._lock:
            rec = self._records.get(key)
            if rec is None:
                rec = CounterRecord(action.threshold, action.window_sec)
                self._records[key] = rec
            if rec.fired:
                return FireDecision(False, token, 0, suppressed=True)
            rec.push(now)
            count = len(rec.timestamps)
            if rec.can_fire(now):
                # set before the command is dispatched: at most one fire per key
                rec.mark_fired(now)
                return FireDecision(True, token, count)
            return FireDecision(False, token, count)

    def sweep(self, now: float) -> int:
        """Drop records that can no longer fire. Returns how many were removed."""
        with self._lock:
            doomed = [key for key, rec in self._records.items() if self._reapable(rec, now)]
            for key in doomed:
                del self._records[key]
        return len(doomed)

    def _reapable(self, rec: CounterRecord, now: float) -> bool:
        if rec.fired:
            # fired keys are kept (and stay suppressed) unless told to forget them
            return self.forget_fired_after > 0 and now - rec.fired_at > self.forget_fired_after
        return rec.is_stale(now)

    def shortest_window(self) -> Optional[float]:
        with self._lock:
            windows = [rec.window for rec in self._records.values() if not rec.fired]
        return min(windows) if windows else None

    def snapshot(self, key: CorrelationKey):
        """Return (timestamps tuple, fired) for a key, or None if it is not held."""
        with self._lock:
            rec = self._records.get(key)
            if rec is None:
                return None
            return tuple(rec.timestamps or ()), rec.fired

    def __len__(self):
        with self._lock:
            return len(self._records)
