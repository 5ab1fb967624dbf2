"""Parsers for ffmpeg's stderr diagnostics.

Everything here is pure and works on one line of text at a time, except
:class:`LineSplitter`, which turns raw stderr reads into those lines.
"""

import codecs
import re

from ffsimple.models import ProgressSnapshot

_DURATION_RE = re.compile(r"Duration: (\d{2}):(\d{2}):(\d{2}\.\d{2})")
_FRAME_RE = re.compile(r"frame=\s*(\d+)")
_FPS_RE = re.compile(r"fps=\s*([\d.]+)")
_TIME_RE = re.compile(r"time=(\S+)")
_SIZE_RE = re.compile(r"size=\s*(\S+)")
_BITRATE_RE = re.compile(r"bitrate=\s*(\S+)")
_SPEED_RE = re.compile(r"speed=\s*(\S+)")
_VERSION_RE = re.compile(r"ffmpeg version (\S+)")
_TIMECODE_PART_RE = re.compile(r"\d+(?:\.\d+)?")
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

_ERROR_MARKERS = (
    "Error",
    "Invalid",
    "No such file or directory",
    "Permission denied",
    "not found",
)


def timecode_to_seconds(timecode: str) -> float:
    """Convert ``H:MM:SS[.fff]`` to seconds.

    Any other shape yields 0.0; the input comes straight from ffmpeg's
    output and is not trusted.
    """
    parts = timecode.strip().split(":")
    if len(parts) != 3:
        return 0.0
    if not all(_TIMECODE_PART_RE.fullmatch(p) for p in parts):
        return 0.0
    hours, minutes, seconds = (float(p) for p in parts)
    return hours * 3600 + minutes * 60 + seconds


def parse_duration(line: str) -> float | None:
    """Return the total duration announced by a ``Duration:`` line, if any."""
    m = _DURATION_RE.search(line)
    if m is None:
        return None
    hours, minutes, seconds = m.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def compute_percent(elapsed: float, duration: float) -> float | None:
    """Completion percentage, clamped to [0, 100]. None without a duration."""
    if not duration or duration <= 0:
        return None
    return max(0.0, min(100.0, elapsed / duration * 100))


def _match_number(pattern: re.Pattern, line: str, cast):
    m = pattern.search(line)
    if m is None:
        return None
    try:
        return cast(m.group(1))
    except ValueError:
        return None


def _match_text(pattern: re.Pattern, line: str) -> str | None:
    m = pattern.search(line)
    return m.group(1) if m else None


def parse_progress(line: str, duration: float | None = None) -> ProgressSnapshot | None:
    """Parse an ffmpeg stats line such as::

        frame=  123 fps= 45 q=28.0 size=    1024kB time=00:00:05.00 bitrate=1677.7kbits/s speed=1.23x

    Only lines carrying ``time=`` or ``frame=`` qualify. Fields that are
    missing stay None. ``percent`` is filled in when ``duration`` is known.
    """
    if "time=" not in line and "frame=" not in line:
        return None

    timemark = _match_text(_TIME_RE, line)
    percent = None
    if timemark is not None and duration:
        percent = compute_percent(timecode_to_seconds(timemark), duration)

    return ProgressSnapshot(
        frames=_match_number(_FRAME_RE, line, int),
        fps=_match_number(_FPS_RE, line, float),
        timemark=timemark,
        size=_match_text(_SIZE_RE, line),
        bitrate=_match_text(_BITRATE_RE, line),
        speed=_match_text(_SPEED_RE, line),
        percent=percent,
    )


def parse_error(line: str) -> str | None:
    """Return the line stripped if it looks like an ffmpeg error message."""
    if any(marker in line for marker in _ERROR_MARKERS):
        return line.strip()
    return None


def parse_version(version_output: str) -> str:
    m = _VERSION_RE.search(version_output)
    return m.group(1) if m else "unknown"


class LineSplitter:
    """Reassemble lines from arbitrarily sized stderr reads.

    ffmpeg redraws its stats line with a bare ``\\r``, so carriage returns
    count as line breaks too. A trailing partial line is held until the
    next read (or :meth:`flush`). Blank lines are dropped.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, data: bytes) -> list[str]:
        text = self._pending + self._decoder.decode(data)
        pieces = _LINE_BREAK_RE.split(text)
        self._pending = pieces.pop()
        return [p for p in pieces if p.strip()]

    def flush(self) -> list[str]:
        text = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return [p for p in _LINE_BREAK_RE.split(text) if p.strip()]
