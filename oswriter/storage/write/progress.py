"""Progress parsing and formatting for dd writes."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from oswriter.storage.devices import human_size

_BYTES_RE = re.compile(r"(\d+)\s+bytes")
_RATE_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*([kMG]?B)/s")
_RATE_UNITS = {"B": 1, "kB": 1000, "MB": 1000**2, "GB": 1000**3}


@dataclass(frozen=True)
class ProgressUpdate:
    bytes_copied: int
    rate: Optional[float] = None  # bytes per second


def format_eta(seconds):
    """Format ETA in HH:MM:SS or MM:SS format."""
    if seconds is None:
        return None
    seconds = int(seconds)
    if seconds < 0:
        return None
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours:d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def parse_dd_progress(line: str) -> Optional[ProgressUpdate]:
    """Parse one ``dd status=progress`` line.

    Example line: ``1073741824 bytes (1.1 GB, 1.0 GiB) copied, 12 s, 89.5 MB/s``
    """
    bytes_match = _BYTES_RE.search(line)
    if not bytes_match:
        return None
    rate = None
    rate_match = _RATE_RE.search(line)
    if rate_match:
        value = float(rate_match.group(1).replace(",", "."))
        rate = value * _RATE_UNITS[rate_match.group(2)]
    return ProgressUpdate(bytes_copied=int(bytes_match.group(1)), rate=rate)


def format_progress_line(update: ProgressUpdate, total_bytes: Optional[int] = None) -> str:
    """Format a progress update into a single console line."""
    line = f"Wrote {human_size(update.bytes_copied)}"
    if total_bytes:
        percent = min(100.0, (update.bytes_copied / total_bytes) * 100)
        line = f"{line} of {human_size(total_bytes)} ({percent:.1f}%)"
    if update.rate:
        line = f"{line} {human_size(update.rate)}/s"
        if total_bytes and update.bytes_copied <= total_bytes:
            eta = format_eta((total_bytes - update.bytes_copied) / update.rate)
            if eta:
                line = f"{line} ETA {eta}"
    return line


class ProgressReporter:
    """Turn raw dd stderr lines into throttled progress output."""

    def __init__(
        self,
        emit: Callable[[str], None],
        total_bytes: Optional[int] = None,
        interval_seconds: float = 1.0,
        log=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.emit = emit
        self.total_bytes = total_bytes
        self.interval = interval_seconds
        self.log = log
        self.clock = clock
        self.last_update: Optional[ProgressUpdate] = None
        self._last_emit: Optional[float] = None

    def __call__(self, line: str) -> None:
        if self.log is not None:
            self.log.trace(f"dd: {line.strip()}")
        update = parse_dd_progress(line)
        if update is None:
            return
        self.last_update = update
        now = self.clock()
        if self._last_emit is not None and now - self._last_emit < self.interval:
            return
        self._last_emit = now
        self.emit(format_progress_line(update, self.total_bytes))
