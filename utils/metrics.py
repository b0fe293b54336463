#!/usr/bin/env python3
"""Run metrics for the activity agent, appended as JSONL.

Counters cover run outcomes and dropped scheduler triggers; ``StageTimer``
records how long each pipeline stage took and whether it failed. Disabled
unless METRICS_ENABLED=1; nothing reads the file back.
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from configs.config import Config


def _metrics_file() -> Path:
    root = Path(Config.METRICS_ROOT)
    root.mkdir(parents=True, exist_ok=True)
    return root / "metrics.log"


def incr(name: str, value: Any = 1, **fields) -> None:
    if not Config.METRICS_ENABLED:
        return
    rec: Dict[str, Any] = {"ts": int(time.time()), "metric": name, "value": value}
    rec.update(fields)
    with open(_metrics_file(), "a", encoding="utf-8") as f:
        f.write(json.dumps(rec, separators=(",", ":"), default=str) + "\n")
        f.flush()
        os.fsync(f.fileno())


class StageTimer:
    """Time one pipeline stage and record ``stage.latency_s``.

    The record carries the stage name, the repository, ``ok`` and, when the
    stage raised, the error code (``UNEXPECTED`` for non-agent errors).
    Exceptions are never suppressed.
    """

    def __init__(self, stage: str, repo: str):
        self.stage = stage
        self.repo = repo
        self.elapsed = 0.0
        self.error_code: Optional[str] = None
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed = time.perf_counter() - self._t0
        if exc is not None:
            self.error_code = getattr(exc, "code", None) or "UNEXPECTED"
        incr(
            "stage.latency_s",
            value=round(self.elapsed, 3),
            stage=self.stage,
            repo=self.repo,
            ok=exc is None,
            code=self.error_code,
        )
        return False
