"""
Reader for the classic line-oriented rules file:

    # comment
    pattern  <name>  <file>  <regex...>
    action   <pattern-name>  <threshold>  <window-seconds>  <command...>

Entries come back as the same dicts the YAML `patterns`/`actions` lists hold,
so they go through the same validation in `config.build_rules`.
"""

from pathlib import Path
import re

from .logging import emit_ops

PATTERN_LINE = re.compile(r"^pattern\s+(\S+)\s+(\S+)\s+(.*)$")
ACTION_LINE = re.compile(r"^action\s+(\S+)\s+(\S+)\s+(\S+)\s+(.*)$")


def parse_rules(lines):
    patterns, actions = [], []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        m = PATTERN_LINE.match(line)
        if m:
            patterns.append({"name": m.group(1), "file": m.group(2), "regex": m.group(3)})
            continue
        m = ACTION_LINE.match(line)
        if m:
            # numbers stay strings here; build_actions rejects bad ones
            actions.append({
                "pattern": m.group(1),
                "threshold": m.group(2),
                "window_sec": m.group(3),
                "command": m.group(4),
            })
    return patterns, actions


def read_rules_file(cfg, path):
    p = Path(path)
    if not p.exists():
        emit_ops(cfg, "ERROR", "config", "rules_file_not_found", {"path": str(path)})
        return [], []
    with open(p, "r", encoding="utf-8") as f:
        patterns, actions = parse_rules(f)
    emit_ops(cfg, "INFO", "config", "rules_file_read",
             {"path": str(path), "patterns": len(patterns), "actions": len(actions)})
    return patterns, actions
