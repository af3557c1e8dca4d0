from pathlib import Path
import datetime

import orjson

def logs_dir(cfg):
    p = Path(cfg["paths"]["logs_dir"]).resolve()
    p.mkdir(parents=True, exist_ok=True)
    return p

def now_iso():
    return datetime.datetime.now(datetime.timezone.utc).isoformat()

def json_dumps(obj):
    # default=str keeps Paths and other odd values in kv from breaking a log line
    return orjson.dumps(obj, default=str).decode("utf-8")
