"""Logging helpers for nali-geo."""
from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def log_path() -> Optional[Path]:
    """Return the log file path from NALI_GEO_LOG, or None when unset."""
    override = os.environ.get("NALI_GEO_LOG")
    if override:
        return Path(override)
    return None


def debug_enabled() -> bool:
    return os.environ.get("NALI_GEO_DEBUG") == "1"


def ensure_log_dir() -> None:
    path = log_path()
    if path is None:
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass


def _append(line: str) -> None:
    path = log_path()
    if path is None:
        return
    ensure_log_dir()
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    try:
        with path.open("a", encoding="utf-8") as fh:
            fh.write(f"{stamp} {line}\n")
    except OSError:
        pass


def log(level: str, message: str) -> None:
    if level == "DEBUG" and not debug_enabled():
        return
    line = f"[{level}] {message}"
    sys.stderr.write(line + "\n")
    _append(line)


def debug(message: str) -> None:
    log("DEBUG", message)


def warning(message: str) -> None:
    log("WARNING", message)


def error(message: str) -> None:
    log("ERROR", message)
