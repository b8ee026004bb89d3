"""Run nali for a single IP and extract the bracketed location text.

nali prints something like ``1.2.3.4 [San Francisco, US]``; the location is
the text between the first ``" ["`` and the ``"]"`` that follows it.
"""
from __future__ import annotations

import os
import selectors
import subprocess
import time

from . import logging_utils as log
from .buffers import BoundedBuffer

DEFAULT_BINARY = "nali"
DEFAULT_TIMEOUT = 5.0
RAW_CAPACITY = 1024
START_MARKER = " ["
END_MARKER = "]"


class GeoLookupError(RuntimeError):
    """Base class for a failed nali lookup."""


class EmptyOutput(GeoLookupError):
    pass


class NoLocationMarker(GeoLookupError):
    pass


class UnterminatedLocation(GeoLookupError):
    pass


class LookupTimedOut(GeoLookupError):
    pass


class SpawnFailed(GeoLookupError):
    pass


def parse_location(text: str) -> str:
    start = text.find(START_MARKER)
    if start == -1:
        raise NoLocationMarker(f"no {START_MARKER!r} in nali output")
    start += len(START_MARKER)
    end = text.find(END_MARKER, start)
    if end == -1:
        raise UnterminatedLocation(f"no {END_MARKER!r} after location start")
    return text[start:end]


def _read_bounded(proc: subprocess.Popen, capacity: int, deadline: float) -> bytes:
    fd = proc.stdout.fileno()
    chunks = []
    size = 0
    with selectors.DefaultSelector() as selector:
        selector.register(fd, selectors.EVENT_READ)
        while size < capacity:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise LookupTimedOut("timed out reading nali output")
            if not selector.select(remaining):
                continue
            chunk = os.read(fd, capacity - size)
            if not chunk:
                break
            chunks.append(chunk)
            size += len(chunk)
    return b"".join(chunks)


def _reap(proc: subprocess.Popen) -> None:
    if proc.stdout is not None and not proc.stdout.closed:
        proc.stdout.close()
    if proc.poll() is None:
        proc.kill()
    proc.wait()


def run_nali(
    ip: str,
    binary: str = DEFAULT_BINARY,
    timeout: float = DEFAULT_TIMEOUT,
    capacity: int = RAW_CAPACITY,
) -> bytes:
    """Return at most ``capacity`` bytes of ``<binary> <ip>`` stdout.

    The child is always reaped before returning or raising; a child still
    running at the deadline is killed and ``LookupTimedOut`` is raised.
    """
    deadline = time.monotonic() + timeout
    try:
        proc = subprocess.Popen(
            [binary, ip],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        raise SpawnFailed(f"cannot run {binary}: {exc}") from exc

    try:
        raw = _read_bounded(proc, capacity, deadline)
        proc.stdout.close()
        try:
            proc.wait(timeout=max(deadline - time.monotonic(), 0))
        except subprocess.TimeoutExpired as exc:
            raise LookupTimedOut(f"{binary} {ip} did not exit within {timeout}s") from exc
    finally:
        _reap(proc)

    if proc.returncode != 0:
        log.debug(f"{binary} {ip} exited with {proc.returncode}")
    return raw


def lookup(
    ip: str,
    out_city: BoundedBuffer,
    *,
    binary: str = DEFAULT_BINARY,
    timeout: float = DEFAULT_TIMEOUT,
    raw_capacity: int = RAW_CAPACITY,
) -> str:
    """Resolve ``ip`` with nali and store the location in ``out_city``.

    Returns the stored text, which may be a truncated prefix depending on the
    buffer's overflow policy. ``out_city`` is only written on success.
    """
    raw = run_nali(ip, binary=binary, timeout=timeout, capacity=raw_capacity)
    if not raw:
        raise EmptyOutput(f"{binary} printed nothing for {ip}")
    location = parse_location(raw.decode("utf-8", errors="replace"))
    if out_city.truncate and not out_city.fits(location):
        log.warning(f"location for {ip} truncated to {out_city.capacity} bytes")
    return out_city.write(location)
