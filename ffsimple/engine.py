"""Orchestrator that runs the split/transcribe pipeline defined by a Manifest."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ffsimple import ffutil
from ffsimple.analyzers.transcribe import transcribe_chunks
from ffsimple.editors.split import split_file_on_silences
from ffsimple.manifest import Manifest
from ffsimple.models import AudioChunk, Segment
from ffsimple.process import CancelToken

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    chunks: list[AudioChunk]
    duration: float = 0.0
    transcript_segments: list[Segment] = field(default_factory=list)

    @property
    def chunk_paths(self) -> list[Path]:
        return [c.filename for c in self.chunks]


def process(
    manifest: Manifest,
    on_progress: Callable[[str, float], None] | None = None,
    cancel: CancelToken | None = None,
) -> EngineResult:
    """Execute the full pipeline.

    ``manifest.output`` is the directory the chunks are written to.

    Args:
        manifest: Validated manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
        cancel: Token that aborts the running ffmpeg processes.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    ffutil.check_ffmpeg()

    _progress("Probing media metadata", 0.0)
    duration = ffutil.probe(manifest.input).duration or 0.0
    _progress("Probing media metadata", 0.05)

    manifest.output.mkdir(parents=True, exist_ok=True)

    # chunk cuts span 0.1 to 0.8, transcription the rest
    split_end = 0.8 if manifest.transcribe.enabled else 0.95
    total = 0
    done = 0

    def on_started(count: int) -> None:
        nonlocal total
        total = count
        _progress(f"Cutting {count} chunks", 0.1)

    def on_chunk(path: Path, index: int) -> None:
        nonlocal done
        done += 1
        _progress(f"Cut {path.name}", 0.1 + (split_end - 0.1) * done / max(total, 1))

    _progress("Detecting silences", 0.06)
    chunks = split_file_on_silences(
        manifest.input,
        output_dir=manifest.output,
        config=manifest.split,
        on_started=on_started,
        on_chunk=on_chunk,
        cancel=cancel,
    )
    logger.info(f"Split {manifest.input} into {len(chunks)} chunks")

    transcript_segments: list[Segment] = []
    if manifest.transcribe.enabled:
        _progress("Transcribing audio", split_end)
        transcript_segments = transcribe_chunks(chunks, manifest.transcribe)

    _progress("Done", 1.0)
    return EngineResult(
        chunks=chunks,
        duration=duration,
        transcript_segments=transcript_segments,
    )
