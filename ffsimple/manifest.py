"""JSON manifest schema, the contract between CLI/API and engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class SilenceDetectionConfig:
    """Parameters for ffmpeg's silencedetect filter."""

    silence_duration: float = 0.5
    silence_threshold: float = -50.0


@dataclass
class SplitConfig:
    """Configuration for splitting a recording on silences."""

    chunk_duration: float = 60.0
    chunk_min_threshold: float = 0.9
    padding: float = 0.5
    fast: bool = False
    silence: SilenceDetectionConfig = field(default_factory=SilenceDetectionConfig)


@dataclass
class NoiseReductionConfig:
    """Audio cleanup filters applied by format_media. None disables a filter."""

    highpass: float | None = 300
    lowpass: float | None = 3000
    afftdn_start: float | None = 0
    afftdn_stop: float | None = 1.5
    afftdn_nf: float | None = -20
    dialogue_enhance: bool = True


@dataclass
class TranscribeConfig:
    """Configuration for Whisper transcription of split chunks."""

    enabled: bool = False
    model: str = "base"
    language: str | None = None


@dataclass
class Manifest:
    """Top-level processing manifest."""

    input: Path
    output: Path
    version: str = "1"
    split: SplitConfig = field(default_factory=SplitConfig)
    transcribe: TranscribeConfig = field(default_factory=TranscribeConfig)


def load_split_config(data: dict) -> SplitConfig:
    data = dict(data)
    silence = SilenceDetectionConfig(**data.pop("silence", {}))
    return SplitConfig(silence=silence, **data)


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    split = load_split_config(data["split"]) if "split" in data else SplitConfig()
    transcribe = TranscribeConfig(**data["transcribe"]) if "transcribe" in data else TranscribeConfig()

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        split=split,
        transcribe=transcribe,
    )
