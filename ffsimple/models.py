"""Shared data types used across ffsimple."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Union


@dataclass
class TimeRange:
    """A start/end time pair in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class Segment:
    """A labeled time segment, optionally carrying transcript text."""

    start: float
    end: float
    label: str
    text: str | None = None


@dataclass
class AudioChunk:
    """One file produced by splitting a recording, and where it came from."""

    filename: Path
    range: TimeRange


@dataclass
class Frame:
    """A still image extracted from a video, with its timestamp."""

    filename: Path
    start: float


@dataclass(frozen=True)
class FilePath:
    """Media read from or written to a path on disk."""

    path: Path


@dataclass(frozen=True)
class StreamHandle:
    """Media piped through the child's stdin (input) or stdout (output).

    ``stream`` is a binary file object: readable for inputs, writable for
    outputs.
    """

    stream: BinaryIO


Source = Union[FilePath, StreamHandle]


def as_source(value: "str | Path | BinaryIO | Source") -> Source:
    """Wrap a path or a binary file object in the matching source variant."""
    if isinstance(value, (FilePath, StreamHandle)):
        return value
    if isinstance(value, (str, Path)):
        return FilePath(Path(value))
    return StreamHandle(value)


@dataclass(frozen=True)
class Invocation:
    """Everything needed to build one ffmpeg command line.

    ``overwrite`` has no default: callers must decide whether an existing
    output may be replaced.
    """

    inputs: tuple[Source, ...]
    output: Source
    overwrite: bool
    input_options: tuple[str, ...] = ()
    output_options: tuple[str, ...] = ()
    cwd: Path | None = None


@dataclass(frozen=True)
class ProgressSnapshot:
    """One progress readout parsed from an ffmpeg stats line."""

    frames: int | None = None
    fps: float | None = None
    timemark: str | None = None
    size: str | None = None
    bitrate: str | None = None
    speed: str | None = None
    percent: float | None = None


@dataclass(frozen=True)
class StreamInfo:
    """A single stream entry from ffprobe."""

    kind: str
    codec: str | None = None
    width: int | None = None
    height: int | None = None
    channels: int | None = None
    duration: float | None = None


@dataclass(frozen=True)
class ProbeMetadata:
    """Container and stream metadata extracted via ffprobe."""

    duration: float | None = None
    streams: tuple[StreamInfo, ...] = field(default_factory=tuple)

    @property
    def video_streams(self) -> list[StreamInfo]:
        return [s for s in self.streams if s.kind == "video"]

    @property
    def audio_streams(self) -> list[StreamInfo]:
        return [s for s in self.streams if s.kind == "audio"]


@dataclass(frozen=True)
class FFmpegVersion:
    """Installed ffmpeg version and the binaries that were found."""

    version: str
    ffmpeg_path: str
    ffprobe_path: str
