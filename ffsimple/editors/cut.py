"""Slice/merge editor: cut ranges out of a file and join files together."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Sequence

from ffsimple import ffutil
from ffsimple.ffutil import format_number, thread_options
from ffsimple.fsutil import create_temp_dir, hash_input_files
from ffsimple.models import FilePath, Invocation, TimeRange
from ffsimple.process import CancelToken, run_ffmpeg

logger = logging.getLogger(__name__)


def slice_media(
    input_path: Path,
    ranges: Sequence[TimeRange],
    output_folder: Path,
    fast: bool = False,
    cancel: CancelToken | None = None,
) -> list[Path]:
    """Write each range of ``input_path`` to its own file, one ffmpeg run each.

    Outputs are named ``<stem>_<n><suffix>`` with ``n`` starting at 1.
    """
    input_path = Path(input_path)
    outputs: list[Path] = []

    for i, r in enumerate(ranges, 1):
        output = Path(output_folder) / f"{input_path.stem}_{i}{input_path.suffix}"
        run_ffmpeg(
            Invocation(
                inputs=(FilePath(input_path),),
                output=FilePath(output),
                overwrite=True,
                input_options=("-ss", format_number(r.start)),
                output_options=("-t", format_number(r.end - r.start), *thread_options(fast)),
            ),
            cancel=cancel,
        )
        logger.info(f"Sliced media saved as {output}")
        outputs.append(output)

    return outputs


def _concat_line(path: Path) -> str:
    escaped = str(Path(path).resolve()).replace("'", "'\\''")
    return f"file '{escaped}'"


def merge_slices(
    input_files: Sequence[Path],
    output_path: Path,
    fast: bool = False,
    cancel: CancelToken | None = None,
) -> Path:
    """Concatenate files with the concat demuxer, without re-encoding."""
    if not input_files:
        raise ValueError("merge_slices called with empty input list")

    concat_file = Path(tempfile.gettempdir()) / f"{hash_input_files(list(input_files))}.txt"
    concat_file.write_text("\n".join(_concat_line(f) for f in input_files), encoding="utf-8")

    try:
        run_ffmpeg(
            Invocation(
                inputs=(FilePath(concat_file),),
                output=FilePath(Path(output_path)),
                overwrite=True,
                input_options=("-f", "concat", "-safe", "0"),
                output_options=("-c", "copy", *thread_options(fast)),
            ),
            cancel=cancel,
        )
    finally:
        concat_file.unlink(missing_ok=True)

    logger.info(f"Merged media saved as {output_path}")
    return Path(output_path)


def parse_timecode(timecode: str) -> float:
    """``[[H:]M:]S`` to seconds: ``"1:02:03.5"`` -> 3723.5, ``"0:06"`` -> 6."""
    seconds = 0.0
    multiplier = 1
    for part in reversed(timecode.strip().split(":")):
        try:
            seconds += float(part) * multiplier
        except ValueError:
            raise ValueError(f"Invalid timecode: {timecode!r}") from None
        multiplier *= 60
    return seconds


def parse_timecode_ranges(timecode_ranges: Sequence[str]) -> list[tuple[float, float | None]]:
    """Parse ``"start-end"`` strings; an empty end (``"0:06-"``) becomes None."""
    parsed = []
    for text in timecode_ranges:
        start, _, end = text.partition("-")
        parsed.append((parse_timecode(start), parse_timecode(end) if end.strip() else None))
    return parsed


def _resolve_ranges(
    input_path: Path, ranges: Sequence[TimeRange] | Sequence[str]
) -> list[TimeRange]:
    if isinstance(ranges[0], str):
        bounds = parse_timecode_ranges(ranges)
    else:
        bounds = [(r.start, r.end) for r in ranges]

    # only the last range may run to the end of the media
    if not bounds[-1][1]:
        bounds[-1] = (bounds[-1][0], ffutil.get_media_duration(input_path))

    if any(not end for _, end in bounds):
        raise ValueError(f"Invalid ranges specified {list(ranges)}")
    if any(end <= start for start, end in bounds):
        raise ValueError(f"Invalid ranges specified {list(ranges)}: end must be after start")

    return [TimeRange(start=start, end=end) for start, end in bounds]


def slice_and_merge(
    input_path: Path,
    output_path: Path,
    ranges: Sequence[TimeRange] | Sequence[str],
    fast: bool = False,
    cancel: CancelToken | None = None,
) -> Path:
    """Keep only ``ranges`` of ``input_path`` and join them into ``output_path``.

    Ranges are TimeRanges or ``"start-end"`` timecode strings. The last
    range may leave its end open to run to the end of the media.
    """
    if not ranges:
        raise ValueError("Ranges array cannot be empty")

    resolved = _resolve_ranges(Path(input_path), ranges)

    slice_dir = create_temp_dir()
    try:
        slices = slice_media(input_path, resolved, slice_dir, fast=fast, cancel=cancel)
        return merge_slices(slices, output_path, cancel=cancel)
    finally:
        shutil.rmtree(slice_dir, ignore_errors=True)
