"""Whole-line regex matching and correlation token extraction."""

from typing import Optional, Union
import re

# Token used when a pattern has no key group: every match shares one counter.
NO_KEY = "NONE"

DEFAULT_KEY_GROUP = 2


def resolve_key_group(regex: re.Pattern, key_group: Optional[Union[int, str]], explicit: bool):
    """
    Validate `key_group` against the compiled regex at load time.

    Returns the group to extract, or None when the sentinel should be used.
    An explicitly configured group that the regex does not define is a load
    error (ValueError). The implicit default (group 2) quietly degrades to the
    sentinel for regexes with fewer groups.
    """
    if key_group is None:
        return None
    if isinstance(key_group, str) and not key_group.isdigit():
        if key_group in regex.groupindex:
            return key_group
        raise ValueError(f"regex has no named group {key_group!r}")
    index = int(key_group)
    if index < 0:
        raise ValueError(f"key_group must be >= 0, got {index}")
    if index <= regex.groups:
        return index
    if explicit:
        raise ValueError(f"regex has {regex.groups} group(s), key_group {index} does not exist")
    return None


def match(rule, line: str) -> Optional[str]:
    """Return the correlation token if `line` matches the rule, else None."""
    m = rule.regex.fullmatch(line)
    if m is None:
        return None
    if rule.key_group is None:
        return NO_KEY
    value = m.group(rule.key_group)
    if value is None:
        # optional group that did not take part in the match
        return NO_KEY
    return value.strip()


def leading_groups(rule, line: str, n: int = 2) -> tuple:
    """First `n` capture groups of a matching line (e.g. date and address), for tracing."""
    m = rule.regex.fullmatch(line)
    if m is None:
        return ()
    return m.groups()[:n]
