"""Audio editors that rework the audio track of a file."""

import logging
from pathlib import Path
from typing import BinaryIO, Callable

from ffsimple.ffutil import format_number, thread_options
from ffsimple.filters import noise_reduction_filters
from ffsimple.manifest import NoiseReductionConfig
from ffsimple.models import FilePath, Invocation, ProgressSnapshot, Source, as_source
from ffsimple.process import CancelToken, run_ffmpeg

logger = logging.getLogger(__name__)


def replace_audio(video_path: Path, audio_path: Path, output_path: Path) -> Path:
    """Swap the audio track of a video for another file's audio."""
    logger.info(f"Replacing audio in {video_path} with {audio_path}")
    run_ffmpeg(
        Invocation(
            inputs=(FilePath(Path(video_path)), FilePath(Path(audio_path))),
            output=FilePath(Path(output_path)),
            overwrite=True,
            output_options=(
                "-c:v", "copy",
                "-c:a", "aac",
                "-strict", "experimental",
                "-map", "0:v:0",
                "-map", "1:a:0",
            ),
        )
    )
    return Path(output_path)


def delay_audio(input_path: Path, output_path: Path, delay: float) -> Path:
    """Shift the audio against the video by ``delay`` seconds.

    Positive values make the audio play later, negative values earlier.
    Both streams are copied, not re-encoded.
    """
    input_path = Path(input_path)
    run_ffmpeg(
        Invocation(
            # the offset applies to the first input only; it supplies the audio
            inputs=(FilePath(input_path), FilePath(input_path)),
            output=FilePath(Path(output_path)),
            overwrite=True,
            input_options=("-itsoffset", format_number(delay)),
            output_options=("-map", "1:v", "-map", "0:a", "-c", "copy"),
        )
    )
    return Path(output_path)


def format_media(
    source: "Path | str | BinaryIO | Source",
    output_path: Path,
    denoise: bool = True,
    noise_reduction: NoiseReductionConfig | None = None,
    fast: bool = False,
    on_started: Callable[[Path], None] | None = None,
    on_progress: Callable[[float], None] | None = None,
    on_finished: Callable[[Path], None] | None = None,
    cancel: CancelToken | None = None,
) -> Path:
    """Convert a file or binary stream to mono audio, cleaning up speech.

    Args:
        source: Path, binary file object, or an explicit source variant.
        output_path: Where the converted file is written.
        denoise: Apply the noise reduction filter chain.
        noise_reduction: Filter settings; defaults to NoiseReductionConfig().
        fast: Let ffmpeg use every CPU.
        on_started: Called with ``output_path`` before ffmpeg starts.
        on_progress: Called with the completion percentage (0 when unknown).
        on_finished: Called with ``output_path`` after ffmpeg succeeds.
    """
    output_path = Path(output_path)
    logger.debug(f"format_media: {source}, output_path: {output_path}")

    output_options = ["-ac", "1"]
    if denoise:
        filters = noise_reduction_filters(noise_reduction or NoiseReductionConfig())
        logger.debug(f"Using filters {filters}")
        if filters:
            output_options += ["-af", ",".join(filters)]
    output_options += thread_options(fast)

    if on_started:
        on_started(output_path)

    def _progress(snapshot: ProgressSnapshot) -> None:
        if on_progress:
            on_progress(snapshot.percent or 0.0)

    run_ffmpeg(
        Invocation(
            inputs=(as_source(source),),
            output=FilePath(output_path),
            overwrite=True,
            output_options=tuple(output_options),
        ),
        on_progress=_progress,
        cancel=cancel,
    )

    logger.debug(f"Formatted file: {output_path}")
    if on_finished:
        on_finished(output_path)
    return output_path
