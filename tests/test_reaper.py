from __future__ import annotations

import time

from logtrip.engine.counters import CorrelationKey, CounterStore
from logtrip.engine.reaper import Reaper
from logtrip.engine.rules import ActionRule


def _action(window: float, ordinal: int = 0, threshold: int = 5) -> ActionRule:
    return ActionRule(pattern="sshd", threshold=threshold, window_sec=window,
                      command="true", ordinal=ordinal)


def test_sweep_evicts_stale_and_keeps_recent(cfg) -> None:
    store = CounterStore()
    store.record(_action(60), "sshd", "old", 0)
    store.record(_action(60), "sshd", "recent", 50)
    reaper = Reaper(cfg, store, initial_delay=1800)

    assert reaper.sweep_once(now=100) == 1
    assert store.snapshot(CorrelationKey(0, "sshd", "old")) is None
    assert store.snapshot(CorrelationKey(0, "sshd", "recent")) is not None


def test_delay_adapts_to_shortest_window(cfg) -> None:
    store = CounterStore()
    reaper = Reaper(cfg, store, initial_delay=1800, min_delay=1)
    assert reaper.next_delay() == 1800

    store.record(_action(600), "sshd", "a", 0)
    assert reaper.next_delay() == 600

    store.record(_action(0.01, ordinal=1), "sshd", "a", 0)
    assert reaper.next_delay() == 1

    store.record(_action(7200, ordinal=2), "sshd", "b", 0)
    assert reaper.next_delay() == 1


def test_background_thread_sweeps_and_stops(cfg) -> None:
    store = CounterStore()
    store.record(_action(0.05), "sshd", "x", 0)
    reaper = Reaper(cfg, store, initial_delay=0.05, min_delay=0.01, clock=lambda: 1000.0)

    reaper.start()
    deadline = time.time() + 5
    while len(store) and time.time() < deadline:
        time.sleep(0.01)
    reaper.stop()

    assert len(store) == 0
    assert not reaper.is_alive()


def test_new_records_can_be_created_while_running(cfg) -> None:
    store = CounterStore()
    reaper = Reaper(cfg, store, initial_delay=0.01, min_delay=0.01, clock=lambda: 0.0)
    reaper.start()
    try:
        for i in range(200):
            store.record(_action(60), "sshd", f"10.0.0.{i}", 0)
    finally:
        reaper.stop()
    assert len(store) == 200
