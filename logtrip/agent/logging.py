"""JSONL logging helpers for detections (fires) and ops logs."""

from pathlib import Path
import threading

from .utils import logs_dir, now_iso, json_dumps

LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

# The scheduling loop, the reaper and dispatch workers all write here.
_WRITE_LOCK = threading.Lock()

def _write_jsonl(path: Path, obj: dict) -> None:
    line = json_dumps(obj) + "\n"
    with _WRITE_LOCK:
        with open(path, "a", encoding="utf-8") as f:
            f.write(line)

def enabled(cfg, level: str) -> bool:
    floor = str(cfg.get("logging", {}).get("level", "INFO")).upper()
    return LEVELS.get(level, 20) >= LEVELS.get(floor, 20)

def emit_event(cfg, **kwargs) -> None:
    """
    Fire records (one JSON object per line) → logs/detections.jsonl
    Schema keys: ts, schema_version, src, pattern, action, rule_id, severity, summary, metadata
    """
    base = {"ts": now_iso(), "schema_version": "1.0"}
    _write_jsonl(logs_dir(cfg) / "detections.jsonl", {**base, **kwargs})

def emit_ops(cfg, level: str, component: str, msg: str, kv: dict | None = None) -> None:
    """
    Operational log lines (start/stop/matches/errors) → logs/ops.jsonl
    Also echoed to stdout with a timestamp prefix when `logging.console` is on.
    """
    if not enabled(cfg, level):
        return
    obj = {
        "ts": now_iso(),
        "level": level,
        "component": component,
        "msg": msg,
        "kv": kv or {},
    }
    _write_jsonl(logs_dir(cfg) / "ops.jsonl", obj)
    if cfg.get("logging", {}).get("console", False):
        print(f"{obj['ts']} {level} {component}: {msg} {json_dumps(obj['kv'])}", flush=True)
