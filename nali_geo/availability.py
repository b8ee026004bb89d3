"""Probe whether the nali program is installed and runnable."""
from __future__ import annotations

import subprocess

from . import logging_utils as log

DEFAULT_BINARY = "nali"
DEFAULT_PROBE_TIMEOUT = 5.0


def check_available(binary: str = DEFAULT_BINARY, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    """Run ``<binary> -v`` and report whether it exited with status 0.

    Spawn failures and probes that outlive ``timeout`` count as unavailable.
    """
    try:
        result = subprocess.run(
            [binary, "-v"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        log.warning(f"{binary} -v did not exit within {timeout}s")
        return False
    except OSError as exc:
        log.debug(f"cannot run {binary}: {exc}")
        return False
    if result.returncode != 0:
        log.debug(f"{binary} -v exited with {result.returncode}")
    return result.returncode == 0
