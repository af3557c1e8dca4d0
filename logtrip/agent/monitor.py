"""
logtrip.agent.monitor
=====================
The cooperative scheduling loop.

Each tick polls every pattern once: maybe reopen its file, read at most one
line, match it, and on a match tally every action bound to that pattern.
A counter that crosses its threshold is handed to the dispatcher; the
fire-once flag is already set by the counter store at that point.
"""

import time

from ..engine.matcher import leading_groups, match
from .logging import emit_ops, enabled


class Monitor:
    def __init__(self, cfg, rules, store, dispatcher, clock=time.time):
        self.cfg = cfg
        self.patterns = list(rules.patterns)
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock
        self._bindings = {p.name: rules.actions_for(p.name) for p in self.patterns}

        timing = cfg.get("timing", {})
        self.pause = float(timing.get("loop_pause_sec", 0.005))
        self.reopen_interval = float(timing.get("reopen_interval_sec", 0))
        self.reopen_floor = float(timing.get("reopen_min_sec", 0))

    def tick(self, now=None) -> int:
        """One pass over all patterns. Returns how many lines were read."""
        lines = 0
        for rule in self.patterns:
            if rule.disabled:
                continue
            now_ = self.clock() if now is None else now
            try:
                rule.tailer.maybe_reopen(now_, self.reopen_interval, self.reopen_floor)
            except OSError as e:
                rule.disabled = True
                emit_ops(self.cfg, "ERROR", "monitor", "reopen_failed",
                         {"pattern": rule.name, "path": rule.path, "error": str(e),
                          "note": "this pattern will stop monitoring"})
                continue
            line = rule.tailer.read_line()
            if line is None:
                continue
            lines += 1
            self.process_line(rule, line, now_)
        return lines

    def process_line(self, rule, line: str, now: float) -> list:
        emit_ops(self.cfg, "DEBUG", "monitor", "checking_line", {"pattern": rule.name, "line": line})
        token = match(rule, line)
        if token is None:
            return []
        trace = enabled(self.cfg, "DEBUG")
        decisions = []
        for action in self._bindings.get(rule.name, []):
            decision = self.store.record(action, rule.name, token, now)
            decisions.append(decision)
            if decision.suppressed:
                continue
            kv = {"pattern": rule.name, "action": action.ordinal, "token": token,
                  "count": decision.count, "source": line}
            if trace:
                kv["groups"] = list(leading_groups(rule, line))
            emit_ops(self.cfg, "INFO", "monitor", "match", kv)
            if decision.fire:
                self.dispatcher.fire(action, token)
        return decisions

    def run(self, stop, max_ticks=None) -> int:
        """Loop until `stop["flag"]` is set (or `max_ticks` sweeps ran). Returns ticks run."""
        ticks = 0
        while not stop["flag"]:
            read = self.tick()
            ticks += 1
            if max_ticks and ticks >= max_ticks:
                break
            if not read:
                time.sleep(self.pause)
        return ticks

    def active_patterns(self) -> int:
        return sum(1 for p in self.patterns if not p.disabled)

    def close(self) -> None:
        for rule in self.patterns:
            if rule.tailer is not None:
                rule.tailer.close()
