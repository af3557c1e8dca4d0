"""
logtrip.siem.report
===================
Offline summaries over `logs/detections.jsonl`, the record of every fire.

Each view returns its rows (for callers and tests) and prints them.
"""

import collections

from ..agent.utils import logs_dir
from .ingest import read_events

def timeline_view(events):
    buckets = collections.defaultdict(int)
    for e in events:
        ts = e.get("ts", "")[:16]  # minute resolution
        buckets[ts] += 1
    rows = sorted(buckets.items())
    for k, n in rows:
        print(k, n)
    return rows

def top_keys(events, limit=10):
    c = collections.Counter(e.get("src", "") for e in events)
    rows = c.most_common(limit)
    for key, n in rows:
        print(f"{key:>39}  {n}")
    return rows

def rule_stats(events):
    c = collections.Counter(e.get("rule_id", "") for e in events)
    rows = c.most_common()
    for r, n in rows:
        print(f"{r:>24}  {n}")
    return rows

def dry_run_share(events):
    """Fraction of fires that only logged their command."""
    if not events:
        return 0.0
    dry = sum(1 for e in events if e.get("metadata", {}).get("dry_run"))
    return dry / len(events)

def run_report(cfg, timeline=False, top=False, stats=False):
    events = read_events(logs_dir(cfg) / "detections.jsonl")
    print(f"{len(events)} fire(s) recorded, {dry_run_share(events):.0%} in test mode")
    if timeline:
        timeline_view(events)
    if top:
        top_keys(events)
    if stats:
        rule_stats(events)
    return events
