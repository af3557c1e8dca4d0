from __future__ import annotations

import pytest


@pytest.fixture
def cfg(tmp_path) -> dict:
    return {
        "paths": {"logs_dir": str(tmp_path / "logs")},
        "logging": {"level": "DEBUG", "console": False},
        "timing": {
            "loop_pause_sec": 0,
            "reopen_interval_sec": 0,
            "reopen_min_sec": 0,
            "reaper_initial_delay_sec": 1800,
            "reaper_min_delay_sec": 1,
        },
        "dispatch": {"max_workers": 2, "forget_fired_after_sec": 0, "dry_run": False},
    }
