"""Frame extraction editor."""

import logging
from pathlib import Path

from ffsimple import ffutil
from ffsimple.filters import (
    CropOptions,
    CropPreset,
    FramePreprocessingOptions,
    FramePreprocessingPreset,
    crop_filter,
    frame_preprocessing_filter,
)
from ffsimple.models import FilePath, Frame, Invocation
from ffsimple.process import run_ffmpeg

logger = logging.getLogger(__name__)


def collect_frame_paths(
    folder: Path, prefix: str, extension: str, frequency: float
) -> list[Frame]:
    """List extracted frames in ``folder``; frame ``n`` starts at ``n * frequency``."""
    frames: list[Frame] = []
    for path in Path(folder).iterdir():
        name = path.name
        if not (name.startswith(prefix) and name.endswith(extension)):
            continue
        number = name[len(prefix):len(name) - len(extension)]
        if not number.isdigit():
            continue
        frames.append(Frame(filename=path, start=int(number) * frequency))
    return sorted(frames, key=lambda f: f.start)


def get_frames(
    video_path: Path,
    output_folder: Path,
    frequency: float,
    crop: CropPreset | CropOptions | None = None,
    preprocessing: FramePreprocessingPreset | FramePreprocessingOptions | None = None,
    file_prefix: str = "frame_",
    file_extension: str = ".jpg",
) -> list[Frame]:
    """Save one frame every ``frequency`` seconds as ``<prefix>NNNN<ext>``."""
    width, height = ffutil.get_video_dimensions(video_path)

    filters = [f"fps=1/{ffutil.format_number(frequency)}"]
    if crop is not None:
        filters.append(crop_filter(width, height, crop))
    if preprocessing is not None:
        filters.append(frame_preprocessing_filter(preprocessing))

    run_ffmpeg(
        Invocation(
            inputs=(FilePath(Path(video_path)),),
            output=FilePath(Path(output_folder) / f"{file_prefix}%04d{file_extension}"),
            overwrite=True,
            output_options=(
                "-vf", ",".join(f for f in filters if f),
                "-vsync", "vfr",
                "-start_number", "0",
            ),
        )
    )
    logger.info("Frame extraction completed.")

    return collect_frame_paths(output_folder, file_prefix, file_extension, frequency)
