"""Tests for the engine module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from ffsimple.engine import EngineResult, process
from ffsimple.manifest import Manifest, TranscribeConfig
from ffsimple.models import AudioChunk, ProbeMetadata, Segment, TimeRange

CHUNKS = [
    AudioChunk(filename=Path("out/talk-chunk-000.wav"), range=TimeRange(start=0, end=50)),
    AudioChunk(filename=Path("out/talk-chunk-001.wav"), range=TimeRange(start=50, end=90)),
]


class TestEngineResult:
    def test_defaults(self):
        r = EngineResult(chunks=[])
        assert r.duration == 0.0
        assert r.transcript_segments == []

    def test_chunk_paths(self):
        assert EngineResult(chunks=CHUNKS).chunk_paths == [c.filename for c in CHUNKS]


@patch("ffsimple.engine.ffutil.check_ffmpeg")
@patch("ffsimple.engine.ffutil.probe", return_value=ProbeMetadata(duration=90.0))
class TestProcess:
    @patch("ffsimple.engine.transcribe_chunks")
    @patch("ffsimple.engine.split_file_on_silences")
    def test_split_only(self, mock_split, mock_transcribe, _probe, _check, tmp_path):
        def fake_split(path, output_dir, config, on_started, on_chunk, cancel):
            on_started(2)
            on_chunk(CHUNKS[0].filename, 0)
            on_chunk(CHUNKS[1].filename, 1)
            return CHUNKS

        mock_split.side_effect = fake_split
        progress = MagicMock()
        m = Manifest(input=Path("talk.wav"), output=tmp_path / "out")

        result = process(m, on_progress=progress)

        assert result.chunks == CHUNKS
        assert result.duration == 90.0
        assert result.transcript_segments == []
        assert (tmp_path / "out").is_dir()
        mock_transcribe.assert_not_called()

        fractions = [c.args[1] for c in progress.call_args_list]
        assert fractions == sorted(fractions)
        assert fractions[-1] == 1.0

    @patch("ffsimple.engine.transcribe_chunks")
    @patch("ffsimple.engine.split_file_on_silences", return_value=CHUNKS)
    def test_with_transcription(self, _split, mock_transcribe, _probe, _check, tmp_path):
        segments = [Segment(start=1.0, end=2.0, label="speech", text="hello")]
        mock_transcribe.return_value = segments
        m = Manifest(
            input=Path("talk.wav"),
            output=tmp_path,
            transcribe=TranscribeConfig(enabled=True, model="tiny"),
        )

        result = process(m)

        mock_transcribe.assert_called_once_with(CHUNKS, m.transcribe)
        assert result.transcript_segments == segments
