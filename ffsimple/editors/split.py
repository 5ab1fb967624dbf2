"""Split a recording into chunks that start and end on silences."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable

from ffsimple import ffutil
from ffsimple.analyzers.chunking import map_silences_to_chunk_ranges
from ffsimple.analyzers.silence import detect_silences
from ffsimple.ffutil import format_number, thread_options
from ffsimple.filters import short_clip_filters
from ffsimple.manifest import SplitConfig
from ffsimple.models import AudioChunk, FilePath, Invocation, TimeRange
from ffsimple.process import CancelToken, run_ffmpeg

logger = logging.getLogger(__name__)


def chunk_filename(input_path: Path, output_dir: Path, index: int) -> Path:
    return output_dir / f"{input_path.stem}-chunk-{index:03d}{input_path.suffix}"


def _cut_chunk(
    input_path: Path, chunk: AudioChunk, config: SplitConfig, cancel: CancelToken
) -> None:
    r = chunk.range
    run_ffmpeg(
        Invocation(
            inputs=(FilePath(input_path),),
            output=FilePath(chunk.filename),
            overwrite=True,
            input_options=("-ss", format_number(r.start)),
            output_options=(
                "-t", format_number(r.end - r.start),
                "-af", ",".join(short_clip_filters(config.padding)),
                *thread_options(config.fast),
            ),
        ),
        cancel=cancel,
    )


def split_file_on_silences(
    input_path: Path,
    output_dir: Path | None = None,
    config: SplitConfig | None = None,
    on_started: Callable[[int], None] | None = None,
    on_chunk: Callable[[Path, int], None] | None = None,
    on_finished: Callable[[], None] | None = None,
    cancel: CancelToken | None = None,
    max_workers: int | None = None,
) -> list[AudioChunk]:
    """Split ``input_path`` into chunks of about ``config.chunk_duration``.

    Recordings no longer than one chunk are returned as-is without running
    ffmpeg. Otherwise chunks are cut in parallel (one ffmpeg per CPU by
    default); the first failure cancels the remaining cuts and is raised.

    Args:
        input_path: Recording to split.
        output_dir: Where chunk files go; defaults to the recording's folder.
        config: Chunk sizing and silence detection settings.
        on_started: Called with the number of chunks about to be cut.
        on_chunk: Called with each chunk's path and index as it completes.
        on_finished: Called once every chunk has been written.
        cancel: Token that stops every running and pending cut.
        max_workers: Upper bound on concurrent ffmpeg processes.
    """
    input_path = Path(input_path)
    config = config or SplitConfig()
    output_dir = Path(output_dir) if output_dir else input_path.parent

    logger.debug(f"Split file {input_path}")
    logger.info(
        f"Using chunk_duration={config.chunk_duration}, "
        f"chunk_min_threshold={config.chunk_min_threshold}, "
        f"silence_threshold={config.silence.silence_threshold}, "
        f"silence_duration={config.silence.silence_duration}"
    )

    if config.chunk_duration <= 0:
        raise ValueError(f"chunk_duration must be positive, got {config.chunk_duration}")

    total_duration = ffutil.get_media_duration(input_path)
    if config.chunk_duration >= total_duration:
        return [AudioChunk(filename=input_path, range=TimeRange(start=0, end=total_duration))]

    silences = detect_silences(input_path, config.silence, cancel=cancel)
    ranges = [
        r
        for r in map_silences_to_chunk_ranges(silences, config.chunk_duration, total_duration)
        if r.end - r.start > config.chunk_min_threshold
    ]
    logger.debug(f"Chunk ranges: {ranges}")

    chunks = [
        AudioChunk(filename=chunk_filename(input_path, output_dir, i), range=r)
        for i, r in enumerate(ranges)
    ]
    if not chunks:
        return chunks

    output_dir.mkdir(parents=True, exist_ok=True)
    if on_started:
        on_started(len(chunks))

    token = CancelToken()
    unlink = cancel.add_callback(token.cancel) if cancel is not None else None
    try:
        with ThreadPoolExecutor(max_workers=max_workers or os.cpu_count()) as pool:
            futures = {
                pool.submit(_cut_chunk, input_path, chunk, config, token): i
                for i, chunk in enumerate(chunks)
            }
            try:
                for future in as_completed(futures):
                    future.result()
                    index = futures[future]
                    if on_chunk:
                        on_chunk(chunks[index].filename, index)
            except BaseException:
                token.cancel()
                raise
    finally:
        if unlink is not None:
            unlink()

    if on_finished:
        on_finished()
    return chunks
