"""FFmpeg/ffprobe helpers: binary lookup, command-line building and probing."""

import json
import logging
import math
import os
import shutil
import subprocess
from pathlib import Path

from ffsimple.diagnostics import parse_version
from ffsimple.errors import (
    FFmpegNotFoundError,
    FFmpegRuntimeError,
    FFmpegSpawnError,
    NoVideoStreamError,
    ProbeDecodeError,
)
from ffsimple.models import (
    FFmpegVersion,
    FilePath,
    Invocation,
    ProbeMetadata,
    Source,
    StreamHandle,
    StreamInfo,
)

logger = logging.getLogger(__name__)

STDIN_PIPE = "pipe:0"
STDOUT_PIPE = "pipe:1"


def find_binary(name: str) -> str:
    """Locate ``ffmpeg`` or ``ffprobe``.

    ``FFMPEG_PATH`` / ``FFPROBE_PATH`` take precedence over a PATH lookup.
    """
    override = os.environ.get(f"{name.upper()}_PATH")
    if override:
        return override
    found = shutil.which(name)
    if found is None:
        raise FFmpegNotFoundError(f"{name} not found on PATH")
    return found


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not available."""
    for cmd in ("ffmpeg", "ffprobe"):
        find_binary(cmd)


def detect_ffmpeg() -> FFmpegVersion:
    """Return the installed ffmpeg version and binary locations."""
    try:
        ffmpeg_path = find_binary("ffmpeg")
        ffprobe_path = find_binary("ffprobe")
        result = subprocess.run(
            [ffmpeg_path, "-version"], capture_output=True, text=True, check=True
        )
    except (FFmpegNotFoundError, OSError, subprocess.CalledProcessError) as e:
        raise FFmpegNotFoundError(
            "FFmpeg not found. Please install FFmpeg and ensure it's in your PATH. "
            f"Error: {e}"
        ) from e

    return FFmpegVersion(
        version=parse_version(result.stdout),
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
    )


def format_number(value: float) -> str:
    """Render seconds or filter parameters without float noise (7.5, not 7.500000)."""
    return f"{value:.6f}".rstrip("0").rstrip(".")


def thread_options(fast: bool) -> list[str]:
    """Output options that let ffmpeg use every CPU when ``fast`` is set."""
    if not fast:
        return []
    return ["-threads", str(os.cpu_count() or 1)]


def _source_arg(source: Source, pipe: str) -> str:
    if isinstance(source, FilePath):
        return str(source.path)
    if isinstance(source, StreamHandle):
        return pipe
    raise TypeError(f"Unsupported media source: {source!r}")


def build_args(invocation: Invocation) -> list[str]:
    """Build the ffmpeg argument vector (without the binary) for an invocation.

    Layout: global flags, input options, one ``-i`` per input, output
    options, output. Streams are written as ``pipe:0`` / ``pipe:1``.
    """
    if not invocation.inputs:
        raise ValueError("No inputs specified")

    streamed = [s for s in invocation.inputs if isinstance(s, StreamHandle)]
    if len(streamed) > 1:
        raise ValueError("Only one input can be read from a stream")

    args = ["-hide_banner", "-y" if invocation.overwrite else "-n"]
    args.extend(invocation.input_options)

    for source in invocation.inputs:
        args.extend(["-i", _source_arg(source, STDIN_PIPE)])

    args.extend(invocation.output_options)
    args.append(_source_arg(invocation.output, STDOUT_PIPE))
    return args


def _as_float(value) -> float | None:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _as_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def decode_probe(output: str) -> ProbeMetadata:
    """Decode ffprobe's ``-print_format json`` output."""
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ProbeDecodeError(f"ffprobe output is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProbeDecodeError("ffprobe output is not a JSON object")
    fmt = data.get("format", {})
    raw_streams = data.get("streams", [])
    if not isinstance(fmt, dict) or not isinstance(raw_streams, list):
        raise ProbeDecodeError("ffprobe output is missing format/streams")

    streams: list[StreamInfo] = []
    for s in raw_streams:
        if not isinstance(s, dict):
            raise ProbeDecodeError(f"Unexpected stream entry: {s!r}")
        kind = s.get("codec_type")
        streams.append(
            StreamInfo(
                kind=kind if kind in ("audio", "video") else "other",
                codec=s.get("codec_name"),
                width=_as_int(s.get("width")),
                height=_as_int(s.get("height")),
                channels=_as_int(s.get("channels")),
                duration=_as_float(s.get("duration")),
            )
        )

    return ProbeMetadata(duration=_as_float(fmt.get("duration")), streams=tuple(streams))


def probe(input_path: Path) -> ProbeMetadata:
    """Extract media metadata via ffprobe."""
    cmd = [
        find_binary("ffprobe"),
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise FFmpegSpawnError(f"Could not start ffprobe: {e}") from e

    if result.returncode != 0:
        raise FFmpegRuntimeError(
            f"Failed to probe file {input_path}: ffprobe failed with code "
            f"{result.returncode}: {result.stderr.strip() or 'unknown error'}",
            returncode=result.returncode,
            tail=result.stderr.splitlines(),
        )

    return decode_probe(result.stdout)


def get_media_duration(input_path: Path) -> float:
    """Container duration in seconds, 0.0 when ffprobe does not report one."""
    return probe(input_path).duration or 0.0


def get_video_dimensions(input_path: Path) -> tuple[int, int]:
    """Width and height of the first video stream."""
    video = next(iter(probe(input_path).video_streams), None)
    if video is None or not video.width or not video.height:
        raise NoVideoStreamError("Could not determine video dimensions.")
    return video.width, video.height
