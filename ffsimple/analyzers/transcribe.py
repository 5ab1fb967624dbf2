"""Speech-to-text analyzer using OpenAI Whisper."""

import logging
from typing import Sequence

from ffsimple.manifest import TranscribeConfig
from ffsimple.models import AudioChunk, Segment

logger = logging.getLogger(__name__)


def _load_model(name: str):
    import whisper

    return whisper.load_model(name)


def transcribe_chunks(chunks: Sequence[AudioChunk], config: TranscribeConfig) -> list[Segment]:
    """Run Whisper over each chunk and return segments on the source timeline."""
    if not chunks:
        return []

    model = _load_model(config.model)

    segments: list[Segment] = []
    for chunk in chunks:
        logger.info(f"Transcribing {chunk.filename}")
        result = model.transcribe(str(chunk.filename), language=config.language)
        offset = chunk.range.start
        for seg in result["segments"]:
            segments.append(
                Segment(
                    start=offset + seg["start"],
                    end=offset + seg["end"],
                    label="speech",
                    text=seg["text"].strip(),
                )
            )
    return segments
