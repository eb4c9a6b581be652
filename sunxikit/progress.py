"""Transfer progress tracking with bar and dialog-gauge style output."""

from __future__ import annotations

import math
import sys
import time
from typing import Callable, Optional, TextIO

ProgressCallback = Callable[[int, int], None]

BAR_WIDTH = 48


def kilo(value: float) -> float:
    """Scale by the SI prefix k (1000)."""
    return value / 1000.0


def kibi(value: float) -> float:
    """Scale by the binary prefix Ki (1024)."""
    return value / 1024.0


def rate(transferred: float, elapsed: float) -> float:
    """Transfer rate in bytes per second, 0 if no time has elapsed."""
    if elapsed > 0:
        return transferred / elapsed
    return 0.0


def estimate(remaining: float, rate: float) -> float:
    """Estimated remaining seconds at the given rate, 0 if the rate is unknown."""
    if rate > 0:
        return remaining / rate
    return 0.0


def format_eta(remaining: float) -> str:
    """Format seconds as MM:SS, or '--:--' when out of range."""
    if not math.isfinite(remaining):
        return "--:--"
    seconds = int(remaining + 0.5)
    if 0 <= seconds < 6000:
        return f"{seconds // 60:02d}:{seconds % 60:02d}"
    return "--:--"


class Progress:
    """Tracks progress of a transfer and reports it to a callback."""

    def __init__(
        self,
        out: Optional[TextIO] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.out = out
        self.clock = clock
        self.callback: Optional[ProgressCallback] = None
        self.total = 0
        self.done = 0
        self.start_time = 0.0

    @property
    def _out(self) -> TextIO:
        return self.out if self.out is not None else sys.stdout

    def start(self, callback: Optional[ProgressCallback], expected_total: int) -> None:
        """Begin a new transfer, resetting the counters and the start time."""
        self.callback = callback
        self.total = expected_total
        self.done = 0
        self.start_time = self.clock()

    def update(self, bytes_done: int) -> None:
        """Account for more bytes done and notify the callback."""
        self.done += bytes_done
        if self.callback is not None:
            self.callback(self.total, self.done)

    def elapsed(self) -> float:
        """Seconds since start(), or 0 if never started."""
        if self.start_time != 0.0:
            return self.clock() - self.start_time
        return 0.0

    def bar(self, total: int, done: int) -> None:
        """Draw a one-line progress bar."""
        ratio = done / total if total > 0 else 0.0
        pos = int(BAR_WIDTH * ratio)
        speed = rate(done, self.elapsed())
        eta = estimate(total - done, speed)

        out = self._out
        out.write(f"\r{ratio * 100:3.0f}% [")
        out.write("=" * pos + " " * (BAR_WIDTH - pos))
        if done < total:
            out.write(f"]{kilo(speed):6.1f} kB/s, ETA {format_eta(eta)} ")
        else:
            out.write(f"] {kilo(done):5.0f} kB, {kilo(speed):6.1f} kB/s\n")
        out.flush()

    def gauge(self, total: int, done: int) -> None:
        """Emit a bare percentage per line, suitable for 'dialog --gauge'."""
        if total > 0:
            out = self._out
            out.write(f"{done / total * 100:.0f}\n")
            out.flush()

    def gauge_xxx(self, total: int, done: int) -> None:
        """Emit a percentage plus a caption wrapped in dialog's XXX delimiters."""
        if total <= 0:
            return
        speed = rate(done, self.elapsed())
        eta = estimate(total - done, speed)
        out = self._out
        out.write("XXX\n")
        out.write(f"{done / total * 100:.0f}\n")
        if done < total:
            out.write(
                f"{done} of {total}, {kilo(speed):.1f} kB/s, ETA {format_eta(eta)}\n"
            )
        else:
            out.write(f"Done: {kilo(done):.1f} kB, at {kilo(speed):.1f} kB/s\n")
        out.write("XXX\n")
        out.flush()