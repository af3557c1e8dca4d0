from __future__ import annotations

import json
from pathlib import Path

from logtrip.agent import cli

REGEX = r"^(\w+ \d+ [\d:]+) .*Failed password for .* from (\S+) port .*$"


def _write_config(tmp_path, log) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "paths:\n"
        f"  logs_dir: {tmp_path / 'logs'}\n"
        "logging:\n"
        "  console: false\n"
        "timing:\n"
        "  loop_pause_sec: 0\n"
        "patterns:\n"
        "  - name: sshd\n"
        f"    file: {log}\n"
        f"    regex: '{REGEX}'\n"
        "actions:\n"
        "  - pattern: sshd\n"
        "    threshold: 3\n"
        "    window_sec: 600\n"
        "    command: \"iptables -A INPUT -s %s -j DROP\"\n",
        encoding="utf-8",
    )
    return path


def _lines(ip: str, n: int) -> str:
    return f"Oct 19 10:00:01 host sshd[1]: Failed password for root from {ip} port 22 ssh2\n" * n


def test_run_full_file_in_test_mode(tmp_path) -> None:
    log = tmp_path / "auth.log"
    log.write_text(_lines("203.0.113.7", 5) + _lines("198.51.100.2", 2), encoding="utf-8")
    config = _write_config(tmp_path, log)

    rc = cli.main(["run", "--config", str(config), "--test", "--full", "--max-ticks", "10"])

    assert rc == 0
    detections = (tmp_path / "logs" / "detections.jsonl").read_text(encoding="utf-8").splitlines()
    fires = [json.loads(line) for line in detections]
    assert [f["src"] for f in fires] == ["203.0.113.7"]
    assert fires[0]["metadata"]["command"] == "iptables -A INPUT -s 203.0.113.7 -j DROP"
    ops = [json.loads(line) for line in (tmp_path / "logs" / "ops.jsonl").read_text(encoding="utf-8").splitlines()]
    assert ops[-1]["msg"] == "shutdown"
    assert ops[-1]["kv"]["reason"] == "max_ticks"


def test_run_tail_mode_ignores_existing_lines(tmp_path) -> None:
    log = tmp_path / "auth.log"
    log.write_text(_lines("203.0.113.7", 5), encoding="utf-8")
    config = _write_config(tmp_path, log)

    assert cli.main(["run", "--config", str(config), "--test", "--max-ticks", "10"]) == 0
    assert not (tmp_path / "logs" / "detections.jsonl").exists()


def test_run_without_usable_patterns_fails(tmp_path) -> None:
    config = _write_config(tmp_path, tmp_path / "missing.log")
    assert cli.main(["run", "--config", str(config), "--test", "--max-ticks", "1"]) == 1


def test_check_and_report(tmp_path, capsys) -> None:
    log = tmp_path / "auth.log"
    log.write_text("", encoding="utf-8")
    config = _write_config(tmp_path, log)

    assert cli.main(["check", "--config", str(config)]) == 0
    assert "1 pattern(s), 1 action(s), 1 bound" in capsys.readouterr().out

    assert cli.main(["report", "--config", str(config), "--top"]) == 0
    assert "0 fire(s) recorded" in capsys.readouterr().out


def test_missing_config_exits_2(tmp_path) -> None:
    assert cli.main(["check", "--config", str(tmp_path / "nope.yaml")]) == 2


def test_run_survives_a_command_with_a_stray_quote(tmp_path) -> None:
    log = tmp_path / "auth.log"
    log.write_text(_lines("203.0.113.7", 3), encoding="utf-8")
    config = _write_config(tmp_path, log)
    text = config.read_text(encoding="utf-8").replace(
        "\"iptables -A INPUT -s %s -j DROP\"", "\"logger can't reach %s\"")
    config.write_text(text, encoding="utf-8")

    rc = cli.main(["run", "--config", str(config), "--full", "--max-ticks", "5"])

    assert rc == 0
    ops = [json.loads(line) for line in (tmp_path / "logs" / "ops.jsonl").read_text(encoding="utf-8").splitlines()]
    msgs = [o["msg"] for o in ops]
    assert "action_skipped" in msgs
    assert "fatal" not in msgs
    assert ops[-1]["kv"]["reason"] == "max_ticks"
