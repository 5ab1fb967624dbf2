"""Tests for Whisper transcription of split chunks."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from ffsimple.analyzers.transcribe import transcribe_chunks
from ffsimple.manifest import TranscribeConfig
from ffsimple.models import AudioChunk, Segment, TimeRange


@patch("ffsimple.analyzers.transcribe._load_model")
class TestTranscribeChunks:
    def test_offsets_by_chunk_start(self, mock_load):
        model = MagicMock()
        model.transcribe.side_effect = [
            {"segments": [{"start": 0.5, "end": 2.0, "text": " Hello there. "}]},
            {"segments": [{"start": 1.0, "end": 3.5, "text": "General Kenobi."}]},
        ]
        mock_load.return_value = model
        chunks = [
            AudioChunk(filename=Path("a-chunk-000.wav"), range=TimeRange(start=0, end=58)),
            AudioChunk(filename=Path("a-chunk-001.wav"), range=TimeRange(start=58, end=120)),
        ]

        segments = transcribe_chunks(chunks, TranscribeConfig(enabled=True, model="tiny", language="en"))

        mock_load.assert_called_once_with("tiny")
        model.transcribe.assert_any_call("a-chunk-001.wav", language="en")
        assert segments == [
            Segment(start=0.5, end=2.0, label="speech", text="Hello there."),
            Segment(start=59.0, end=61.5, label="speech", text="General Kenobi."),
        ]

    def test_no_chunks_skips_model(self, mock_load):
        assert transcribe_chunks([], TranscribeConfig(enabled=True)) == []
        mock_load.assert_not_called()
