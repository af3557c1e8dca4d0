"""
logtrip.engine.rules
====================
Rule set value types shared by the loader, the monitor loop and the engine.

- `PatternRule`: a named regex bound to one file. Owns its tailer (file state).
- `ActionRule`: threshold/window/command bound to a pattern by name.
- `RuleSet`: what the loader hands to the monitor.

Everything except `PatternRule.tailer` and `PatternRule.disabled` is fixed
after load.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Union
import re


@dataclass
class PatternRule:
    name: str
    path: str
    regex: re.Pattern
    key_group: Optional[Union[int, str]] = 2
    tailer: object = None
    disabled: bool = False

    def __str__(self):
        return f"pattern {self.name} bound to file {self.path} with regex {self.regex.pattern}"


@dataclass(frozen=True)
class ActionRule:
    pattern: str
    threshold: int
    window_sec: float
    command: str
    ordinal: int

    @property
    def rule_id(self) -> str:
        return f"{self.pattern}#{self.ordinal}"

    def __str__(self):
        return (f"action {self.ordinal} bound to pattern {self.pattern} threshold {self.threshold} "
                f"window {self.window_sec}s command {self.command}")


class RuleSet(NamedTuple):
    patterns: list
    actions: list

    def actions_for(self, pattern_name: str) -> list:
        return [a for a in self.actions if a.pattern == pattern_name]
