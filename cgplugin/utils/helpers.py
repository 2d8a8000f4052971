"""Small shared helpers."""

from __future__ import annotations

import time
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def now_ms() -> int:
    """Wall clock in integer milliseconds since the epoch."""
    return int(time.time() * 1000)
