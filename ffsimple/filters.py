"""Builders for ffmpeg filter expressions.

All functions are pure; their output is passed to ffmpeg verbatim.
"""

from dataclasses import dataclass
from enum import Enum

from ffsimple.ffutil import format_number as _fmt
from ffsimple.manifest import NoiseReductionConfig


class CropPreset(str, Enum):
    HORIZONTALLY_CENTERED_TEXT = "HorizontallyCenteredText"
    VERTICALLY_CENTERED_TEXT = "VerticallyCenteredText"
    BOTTOM_TEXT = "BottomText"
    TOP_TEXT = "TopText"


class FramePreprocessingPreset(str, Enum):
    DARK_TEXT_ON_LIGHT_BACKGROUND = "DarkTextOnLightBackground"
    LIGHT_TEXT_ON_DARK_BACKGROUND = "LightTextOnDarkBackground"


@dataclass
class CropOptions:
    """Percentages (0-100) to cut from each edge."""

    top: float = 0
    bottom: float = 0
    left: float = 0
    right: float = 0


@dataclass
class FramePreprocessingOptions:
    grayscale: bool = False


@dataclass
class CropOffset:
    width: float
    height: float
    x: float
    y: float


CROP_PRESETS: dict[CropPreset, CropOptions] = {
    CropPreset.VERTICALLY_CENTERED_TEXT: CropOptions(top=20, bottom=20),
    CropPreset.HORIZONTALLY_CENTERED_TEXT: CropOptions(left=10, right=10),
    CropPreset.BOTTOM_TEXT: CropOptions(top=75, bottom=0),
    CropPreset.TOP_TEXT: CropOptions(top=0, bottom=75),
}

PREPROCESSING_PRESETS: dict[FramePreprocessingPreset, FramePreprocessingOptions] = {
    FramePreprocessingPreset.DARK_TEXT_ON_LIGHT_BACKGROUND: FramePreprocessingOptions(grayscale=True),
    FramePreprocessingPreset.LIGHT_TEXT_ON_DARK_BACKGROUND: FramePreprocessingOptions(grayscale=True),
}


def _clamp_percent(value: float) -> float:
    return min(max(value, 0), 100)


def crop_offset(
    width: int, height: int, options: CropPreset | CropOptions | None = None
) -> CropOffset:
    """Convert percentage crop options into a pixel rectangle."""
    if options is None:
        return CropOffset(width=width, height=height, x=0, y=0)
    if isinstance(options, CropPreset):
        options = CROP_PRESETS[options]

    crop_top = _clamp_percent(options.top) / 100 * height
    crop_bottom = _clamp_percent(options.bottom) / 100 * height
    crop_left = _clamp_percent(options.left) / 100 * width
    crop_right = _clamp_percent(options.right) / 100 * width

    crop_width = width - crop_left - crop_right
    crop_height = height - crop_top - crop_bottom
    if crop_width <= 0 or crop_height <= 0:
        raise ValueError("Invalid crop dimensions. Please adjust your crop options.")

    return CropOffset(width=crop_width, height=crop_height, x=crop_left, y=crop_top)


def crop_filter(
    width: int, height: int, options: CropPreset | CropOptions | None = None
) -> str:
    o = crop_offset(width, height, options)
    return f"crop={_fmt(o.width)}:{_fmt(o.height)}:{_fmt(o.x)}:{_fmt(o.y)}"


def frame_preprocessing_filter(
    options: FramePreprocessingPreset | FramePreprocessingOptions,
) -> str:
    if isinstance(options, FramePreprocessingPreset):
        options = PREPROCESSING_PRESETS[options]
    return "format=gray" if options.grayscale else ""


def noise_reduction_filters(config: NoiseReductionConfig) -> list[str]:
    """Audio filters for speech cleanup, in the order ffmpeg applies them."""
    filters: list[str] = []
    if config.highpass is not None:
        filters.append(f"highpass=f={_fmt(config.highpass)}")
    if config.afftdn_start is not None and config.afftdn_stop is not None:
        filters.append(f"asendcmd={_fmt(config.afftdn_start)} afftdn sn start")
        filters.append(f"asendcmd={_fmt(config.afftdn_stop)} afftdn sn stop")
    if config.afftdn_nf is not None:
        filters.append(f"afftdn=nf={_fmt(config.afftdn_nf)}")
    if config.dialogue_enhance:
        filters.append("dialoguenhance")
    if config.lowpass:
        filters.append(f"lowpass=f={_fmt(config.lowpass)}")
    return filters


def short_clip_filters(padding: float) -> list[str]:
    """Pad a chunk with silence and even out its loudness for transcription."""
    return [f"apad=pad_dur={_fmt(padding)}", "loudnorm", "compand"]
