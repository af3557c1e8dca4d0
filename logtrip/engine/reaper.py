"""
Background sweep that evicts counters which can no longer fire.

The sweep period starts at `initial_delay` and shrinks to the shortest window
held by any live counter: no record can go stale sooner than its own window.
"""

import threading
import time

from ..agent.logging import emit_ops


class Reaper(threading.Thread):

    def __init__(self, cfg, store, initial_delay: float, min_delay: float = 1.0, clock=time.time):
        super().__init__(name="logtrip-reaper", daemon=True)
        self.cfg = cfg
        self.store = store
        self.initial_delay = float(initial_delay)
        self.min_delay = float(min_delay)
        self.clock = clock
        self._halt = threading.Event()

    def next_delay(self) -> float:
        shortest = self.store.shortest_window()
        if shortest is None:
            return self.initial_delay
        return max(self.min_delay, min(self.initial_delay, shortest))

    def sweep_once(self, now=None) -> int:
        now = self.clock() if now is None else now
        removed = self.store.sweep(now)
        emit_ops(self.cfg, "INFO", "reaper", "reaper_sweep", {"removed": removed, "held": len(self.store)})
        return removed

    def run(self):
        while True:
            delay = self.next_delay()
            emit_ops(self.cfg, "DEBUG", "reaper", "reaper_wait", {"delay_sec": delay})
            if self._halt.wait(delay):
                return
            try:
                self.sweep_once()
            except Exception as e:
                # a failed sweep only delays eviction; keep the thread alive
                emit_ops(self.cfg, "ERROR", "reaper", "reaper_error", {"error": str(e)})

    def stop(self, timeout: float = 5.0) -> None:
        self._halt.set()
        if self.is_alive():
            self.join(timeout)
