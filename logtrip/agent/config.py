"""
logtrip.agent.config
====================
YAML config loading and rule building.

`load_cfg()` returns a plain nested dict (defaults merged under the file).
`build_rules()` turns its `patterns`/`actions` lists (plus an optional legacy
rules file) into a `RuleSet`. A rule that fails validation, or whose file
cannot be opened, is logged and skipped; loading continues with the rest.
"""

from pathlib import Path
import copy
import re
import shlex

import yaml

from ..engine.matcher import DEFAULT_KEY_GROUP, resolve_key_group
from ..engine.rules import ActionRule, PatternRule, RuleSet
from .legacy import read_rules_file
from .logging import emit_ops
from .tailer import Tailer, reopen_enabled

DEFAULTS = {
    "paths": {"logs_dir": "logs"},
    "timing": {
        "loop_pause_sec": 0.005,
        "reopen_interval_sec": 3600,
        "reopen_min_sec": 600,
        "reaper_initial_delay_sec": 1800,
        "reaper_min_delay_sec": 1,
    },
    "dispatch": {"max_workers": 4, "forget_fired_after_sec": 0, "dry_run": False},
    "logging": {"level": "INFO", "console": True},
    "rules_file": None,
    "patterns": [],
    "actions": [],
}


class ConfigError(ValueError):
    """The config file is missing or not a usable mapping."""


def _merge(base: dict, override: dict, where: str = "") -> dict:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(out.get(key), dict):
            if value is None:
                # section present but everything under it commented out
                continue
            if not isinstance(value, dict):
                raise ConfigError(f"config section {where}{key} must be a mapping, got {type(value).__name__}")
            out[key] = _merge(out[key], value, f"{where}{key}.")
        else:
            out[key] = value
    return out


def _as_threshold(value) -> int:
    """int() that refuses booleans and fractional numbers instead of truncating them."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"threshold must be a whole number, got {value!r}")
    return int(value)


def load_cfg(path="config.yaml") -> dict:
    """Load YAML config and fill in defaults for anything left out."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"config file not found: {path}")
    with open(p, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f)
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"config file {path} must contain a mapping, got {type(loaded).__name__}")
    return _merge(DEFAULTS, loaded)


def _skip(cfg, kind: str, entry, reason: str) -> None:
    emit_ops(cfg, "WARNING", "config", f"{kind}_skipped", {"entry": entry, "reason": reason})


def build_patterns(cfg, entries, tail_mode: bool = True) -> list:
    patterns = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            _skip(cfg, "pattern", entry, "entry must be a mapping")
            continue
        name = str(entry.get("name") or "").strip().lower()
        path = entry.get("file")
        raw = entry.get("regex")
        if not name or not path or raw is None:
            _skip(cfg, "pattern", entry, "name, file and regex are required")
            continue
        if name in seen:
            _skip(cfg, "pattern", entry, f"duplicate pattern name {name}")
            continue
        try:
            regex = re.compile(str(raw))
        except re.error as e:
            _skip(cfg, "pattern", entry, f"bad regex: {e}")
            continue
        explicit = "key_group" in entry
        try:
            key_group = resolve_key_group(regex, entry.get("key_group", DEFAULT_KEY_GROUP), explicit)
        except ValueError as e:
            _skip(cfg, "pattern", entry, str(e))
            continue

        rule = PatternRule(name=name, path=str(path), regex=regex, key_group=key_group)
        rule.tailer = Tailer(cfg, rule.path, name=name)
        try:
            rule.tailer.open(start_at_end=tail_mode)
        except OSError as e:
            _skip(cfg, "pattern", entry, f"cannot open {path}: {e}; this pattern will NOT be used")
            continue

        seen.add(name)
        patterns.append(rule)
        emit_ops(cfg, "INFO", "config", "pattern_loaded", {"rule": str(rule), "key_group": key_group})
    return patterns


def build_actions(cfg, entries, pattern_names) -> list:
    actions = []
    for entry in entries:
        if not isinstance(entry, dict):
            _skip(cfg, "action", entry, "entry must be a mapping")
            continue
        pattern = str(entry.get("pattern") or "").strip().lower()
        command = entry.get("command")
        if not pattern or command is None:
            _skip(cfg, "action", entry, "pattern and command are required")
            continue
        try:
            threshold = _as_threshold(entry.get("threshold"))
            window = float(entry.get("window_sec"))
        except (TypeError, ValueError):
            _skip(cfg, "action", entry, "threshold must be a whole number and window_sec a number")
            continue
        if threshold < 1 or window <= 0:
            _skip(cfg, "action", entry, "threshold must be >= 1 and window_sec > 0")
            continue
        try:
            shlex.split(str(command))
        except ValueError as e:
            _skip(cfg, "action", entry, f"unparseable command: {e}")
            continue

        # ordinals are handed out in load order and never change afterwards
        action = ActionRule(pattern=pattern, threshold=threshold, window_sec=window,
                            command=str(command), ordinal=len(actions))
        actions.append(action)
        if pattern in pattern_names:
            emit_ops(cfg, "INFO", "config", "action_loaded", {"rule": str(action)})
        else:
            emit_ops(cfg, "WARNING", "config", "action_unbound", {"rule": str(action)})
    return actions


def build_rules(cfg, tail_mode: bool = True) -> RuleSet:
    pattern_entries = list(cfg.get("patterns") or [])
    action_entries = list(cfg.get("actions") or [])

    rules_file = cfg.get("rules_file")
    if rules_file:
        extra_patterns, extra_actions = read_rules_file(cfg, rules_file)
        pattern_entries.extend(extra_patterns)
        action_entries.extend(extra_actions)

    patterns = build_patterns(cfg, pattern_entries, tail_mode=tail_mode)
    actions = build_actions(cfg, action_entries, {p.name for p in patterns})

    timing = cfg.get("timing", {})
    interval = float(timing.get("reopen_interval_sec", 0))
    floor = float(timing.get("reopen_min_sec", 0))
    if reopen_enabled(interval, floor):
        emit_ops(cfg, "INFO", "config", "reopen_enabled", {"interval_sec": interval})
    else:
        emit_ops(cfg, "INFO", "config", "reopen_disabled", {"interval_sec": interval, "floor_sec": floor})
    return RuleSet(patterns, actions)
