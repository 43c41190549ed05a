"""Small shared helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def now_ms() -> int:
    return int(time.time() * 1000)


def mask_secret(value: str | None) -> str:
    """Mask a secret for display: 'not set' or first4...last4."""
    if not value or not value.strip():
        return "not set"
    value = value.strip()
    if len(value) <= 10:
        return "***"
    return f"{value[:4]}...{value[-4:]}"
