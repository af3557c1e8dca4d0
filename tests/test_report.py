from __future__ import annotations

from logtrip.agent.logging import emit_event
from logtrip.siem.ingest import read_events
from logtrip.siem.report import dry_run_share, rule_stats, run_report, timeline_view, top_keys


def _fire(cfg, src: str, rule_id: str, dry_run: bool) -> None:
    emit_event(cfg, src=src, pattern="sshd", action=0, rule_id=rule_id, severity="high",
               summary="test", metadata={"dry_run": dry_run})


def test_read_events_skips_bad_lines(tmp_path) -> None:
    path = tmp_path / "detections.jsonl"
    path.write_text('{"src": "a"}\n\nnot json\n[1, 2]\n{"src": "b"}\n', encoding="utf-8")
    assert [e["src"] for e in read_events(path)] == ["a", "b"]
    assert read_events(tmp_path / "missing.jsonl") == []


def test_views_over_recorded_fires(cfg, capsys) -> None:
    _fire(cfg, "1.1.1.1", "sshd#0", True)
    _fire(cfg, "1.1.1.1", "sshd#1", False)
    _fire(cfg, "2.2.2.2", "sshd#0", False)

    events = run_report(cfg, timeline=True, top=True, stats=True)

    assert len(events) == 3
    assert top_keys(events)[0] == ("1.1.1.1", 2)
    assert rule_stats(events) == [("sshd#0", 2), ("sshd#1", 1)]
    assert sum(n for _, n in timeline_view(events)) == 3
    assert abs(dry_run_share(events) - 1 / 3) < 1e-9
    assert "3 fire(s) recorded" in capsys.readouterr().out
