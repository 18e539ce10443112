"""
Render progress.

Two pieces:
- ProgressParser: derives fractional progress (0.0 - 1.0) from FFmpeg stderr
- MonotonicProgress: maps fractions to integer percentages and clamps them
  so externally observed progress never goes backwards

FFmpeg outputs progress to stderr in this format:
    frame=   24 fps= 12 q=28.0 size=       0kB time=00:00:01.00 bitrate=   0.0kbits/s

The input duration appears once in the input banner:
    Duration: 00:01:00.00, start: 0.000000, bitrate: 1205 kb/s
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional


# Matches: time=00:00:01.00 or time=00:01:23.45
TIME_PATTERN = re.compile(r'time=(\d{2}):(\d{2}):(\d{2})\.(\d{2})')

# Matches: Duration: 00:01:00.00
DURATION_PATTERN = re.compile(r'Duration:\s*(\d{2}):(\d{2}):(\d{2})\.(\d{2})')

FRAME_PATTERN = re.compile(r'frame=\s*(\d+)')

FPS_PATTERN = re.compile(r'fps=\s*([\d.]+)')


def _to_seconds(match: "re.Match[str]") -> float:
    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3))
    centiseconds = int(match.group(4))
    return hours * 3600 + minutes * 60 + seconds + centiseconds / 100.0


@dataclass
class ProgressInfo:
    """Progress reading for a running invocation."""

    # Fraction complete (0.0 - 1.0)
    fraction: float = 0.0

    # Current output position in seconds
    current_time: float = 0.0

    # Expected output duration in seconds (0 until known)
    total_duration: float = 0.0

    current_frame: int = 0
    encoding_fps: float = 0.0


def expected_output_duration(argv: List[str]) -> tuple[Optional[float], float]:
    """
    Read the trim window from an argument vector.

    Returns:
        (duration from -t or None, start offset from -ss)
    """
    duration: Optional[float] = None
    start = 0.0
    for flag, value in zip(argv, argv[1:]):
        try:
            if flag == "-t":
                duration = float(value)
            elif flag == "-ss":
                start = float(value)
        except ValueError:
            continue
    return duration, start


class ProgressParser:
    """
    Parse FFmpeg stderr output for fractional progress.

    Usage:
        parser = ProgressParser(duration=30.0, on_progress=emit)
        for line in ffmpeg_stderr:
            parser.parse_line(line)

    When no duration is given, the first Duration: banner line is used,
    minus any start offset.
    """

    def __init__(
        self,
        duration: Optional[float] = None,
        start_offset: float = 0.0,
        on_progress: Optional[Callable[[ProgressInfo], None]] = None,
    ):
        self.start_offset = start_offset
        self.on_progress = on_progress
        self._progress = ProgressInfo(total_duration=duration or 0.0)
        self._duration_fixed = duration is not None and duration > 0

    def parse_line(self, line: str) -> Optional[ProgressInfo]:
        """
        Parse a single line of FFmpeg stderr output.

        Returns:
            Updated ProgressInfo if the line carried a time reading, None otherwise
        """
        if not self._duration_fixed:
            duration_match = DURATION_PATTERN.search(line)
            if duration_match:
                total = _to_seconds(duration_match) - self.start_offset
                self._progress.total_duration = max(0.0, total)
                self._duration_fixed = self._progress.total_duration > 0
                return None

        time_match = TIME_PATTERN.search(line)
        if not time_match:
            return None

        current_time = _to_seconds(time_match)
        self._progress.current_time = current_time

        if self._progress.total_duration > 0:
            self._progress.fraction = min(1.0, current_time / self._progress.total_duration)
        else:
            self._progress.fraction = 0.0

        frame_match = FRAME_PATTERN.search(line)
        if frame_match:
            self._progress.current_frame = int(frame_match.group(1))

        fps_match = FPS_PATTERN.search(line)
        if fps_match:
            self._progress.encoding_fps = float(fps_match.group(1))

        if self.on_progress:
            self.on_progress(self._progress)

        return self._progress


class MonotonicProgress:
    """
    Clamp engine progress into a non-decreasing integer percentage.

    Out-of-order or decreasing engine reports are absorbed, not surfaced.
    """

    def __init__(self, on_change: Optional[Callable[[int], None]] = None):
        self.on_change = on_change
        self._percent = 0

    @property
    def percent(self) -> int:
        return self._percent

    def update(self, fraction: float) -> Optional[int]:
        """
        Feed a fractional reading.

        Returns:
            The new percentage if it increased, None otherwise
        """
        try:
            value = float(fraction)
        except (TypeError, ValueError):
            return None
        if value != value:  # NaN
            return None

        percent = int(round(min(1.0, max(0.0, value)) * 100))
        if percent <= self._percent:
            return None

        self._percent = percent
        if self.on_change:
            self.on_change(percent)
        return percent

    def complete(self) -> Optional[int]:
        """Force 100%. Used once output has been retrieved."""
        return self.update(1.0)
