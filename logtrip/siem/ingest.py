from pathlib import Path

import orjson

def read_events(path):
    """Load fire records from a detections JSONL file; bad lines are skipped."""
    p = Path(path)
    if not p.exists():
        return []
    events = []
    with open(p, "rb") as f:
        for line in f:
            line = line.strip()
            if not line: continue
            try:
                obj = orjson.loads(line)
            except orjson.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                events.append(obj)
    return events
