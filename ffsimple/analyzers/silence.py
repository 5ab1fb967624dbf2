"""Silence detection analyzer."""

import logging
import os
import re
from pathlib import Path

from ffsimple.ffutil import format_number
from ffsimple.manifest import SilenceDetectionConfig
from ffsimple.models import FilePath, Invocation, TimeRange
from ffsimple.process import CancelToken, run_ffmpeg

logger = logging.getLogger(__name__)

_START_RE = re.compile(r"silence_start: (-?\d+(?:\.\d+)?)")
_END_RE = re.compile(r"silence_end: (-?\d+(?:\.\d+)?)")


class SilenceAccumulator:
    """Pair ``silence_start`` / ``silence_end`` lines from silencedetect.

    A start stays open until an end arrives. A second start replaces the
    open one, an end without an open start is ignored, and a start that is
    never closed is dropped. A malformed number only discards the interval
    it belongs to.
    """

    def __init__(self) -> None:
        self.silences: list[TimeRange] = []
        self._open_start: float | None = None

    def feed(self, line: str) -> None:
        if "silence_start" in line:
            m = _START_RE.search(line)
            self._open_start = float(m.group(1)) if m else None
            if self._open_start is None:
                logger.debug(f"Ignoring malformed silence_start line: {line!r}")
        elif "silence_end" in line and self._open_start is not None:
            m = _END_RE.search(line)
            end = float(m.group(1)) if m else None
            if end is not None and end > self._open_start:
                self.silences.append(TimeRange(start=self._open_start, end=end))
            else:
                logger.debug(f"Ignoring unusable silence_end line: {line!r}")
            self._open_start = None


def parse_silence_lines(lines: list[str]) -> list[TimeRange]:
    """Parse silencedetect stderr lines into silence TimeRanges."""
    acc = SilenceAccumulator()
    for line in lines:
        acc.feed(line)
    return acc.silences


def detect_silences(
    input_path: Path,
    config: SilenceDetectionConfig,
    cancel: CancelToken | None = None,
) -> list[TimeRange]:
    """Run FFmpeg silencedetect and return silent time ranges in stream order."""
    acc = SilenceAccumulator()
    invocation = Invocation(
        inputs=(FilePath(Path(input_path)),),
        output=FilePath(Path(os.devnull)),
        overwrite=True,
        output_options=(
            "-af",
            f"silencedetect=n={format_number(config.silence_threshold)}dB"
            f":d={format_number(config.silence_duration)}",
            "-f", "null",
        ),
    )
    run_ffmpeg(invocation, on_line=acc.feed, cancel=cancel)

    logger.debug(f"Detected {len(acc.silences)} silences in {input_path}")
    return acc.silences
