"""Unit tests for ffutil: argument building, binary lookup and probing."""

import io
import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ffsimple.errors import (
    FFmpegNotFoundError,
    FFmpegRuntimeError,
    FFmpegSpawnError,
    NoVideoStreamError,
    ProbeDecodeError,
)
from ffsimple.ffutil import (
    build_args,
    decode_probe,
    detect_ffmpeg,
    find_binary,
    format_number,
    get_media_duration,
    get_video_dimensions,
    probe,
    thread_options,
)
from ffsimple.models import FilePath, Invocation, StreamHandle


# ---------------------------------------------------------------------------
# build_args (pure)
# ---------------------------------------------------------------------------

class TestBuildArgs:
    def test_layout(self):
        inv = Invocation(
            inputs=(FilePath(Path("in.mp4")),),
            output=FilePath(Path("out.mp4")),
            overwrite=True,
            input_options=("-ss", "5"),
            output_options=("-t", "2.5"),
        )
        assert build_args(inv) == [
            "-hide_banner", "-y", "-ss", "5", "-i", "in.mp4", "-t", "2.5", "out.mp4",
        ]

    def test_no_overwrite(self):
        inv = Invocation(
            inputs=(FilePath(Path("in.mp4")),),
            output=FilePath(Path("out.mp4")),
            overwrite=False,
        )
        assert build_args(inv)[:2] == ["-hide_banner", "-n"]

    def test_multiple_inputs_in_order(self):
        inv = Invocation(
            inputs=(FilePath(Path("video.mp4")), FilePath(Path("audio.wav"))),
            output=FilePath(Path("out.mp4")),
            overwrite=True,
        )
        args = build_args(inv)
        assert args[2:6] == ["-i", "video.mp4", "-i", "audio.wav"]

    def test_streams_use_pipes(self):
        inv = Invocation(
            inputs=(StreamHandle(io.BytesIO()),),
            output=StreamHandle(io.BytesIO()),
            overwrite=True,
            output_options=("-f", "wav"),
        )
        assert build_args(inv) == ["-hide_banner", "-y", "-i", "pipe:0", "-f", "wav", "pipe:1"]

    def test_two_stream_inputs_rejected(self):
        inv = Invocation(
            inputs=(StreamHandle(io.BytesIO()), StreamHandle(io.BytesIO())),
            output=FilePath(Path("out.wav")),
            overwrite=True,
        )
        with pytest.raises(ValueError, match="Only one input"):
            build_args(inv)

    def test_no_inputs_rejected(self):
        with pytest.raises(ValueError, match="No inputs"):
            build_args(Invocation(inputs=(), output=FilePath(Path("o.wav")), overwrite=True))


class TestFormatting:
    @pytest.mark.parametrize("value,expected", [
        (7.5, "7.5"),
        (10, "10"),
        (0.1 + 0.2, "0.3"),
        (-0.25, "-0.25"),
        (7.343764, "7.343764"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    def test_thread_options(self):
        assert thread_options(False) == []
        with patch("ffsimple.ffutil.os.cpu_count", return_value=8):
            assert thread_options(True) == ["-threads", "8"]


# ---------------------------------------------------------------------------
# Binary lookup
# ---------------------------------------------------------------------------

class TestFindBinary:
    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FFMPEG_PATH", "/opt/ffmpeg/bin/ffmpeg")
        assert find_binary("ffmpeg") == "/opt/ffmpeg/bin/ffmpeg"

    def test_path_lookup(self, monkeypatch):
        monkeypatch.delenv("FFPROBE_PATH", raising=False)
        with patch("ffsimple.ffutil.shutil.which", return_value="/usr/bin/ffprobe"):
            assert find_binary("ffprobe") == "/usr/bin/ffprobe"

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("FFMPEG_PATH", raising=False)
        with patch("ffsimple.ffutil.shutil.which", return_value=None):
            with pytest.raises(FFmpegNotFoundError):
                find_binary("ffmpeg")


class TestDetectFFmpeg:
    @patch("ffsimple.ffutil.subprocess.run")
    def test_version(self, mock_run, monkeypatch):
        monkeypatch.setenv("FFMPEG_PATH", "/x/ffmpeg")
        monkeypatch.setenv("FFPROBE_PATH", "/x/ffprobe")
        mock_run.return_value = MagicMock(stdout="ffmpeg version 7.0 Copyright (c)\n")
        info = detect_ffmpeg()
        assert info.version == "7.0"
        assert info.ffmpeg_path == "/x/ffmpeg"
        assert info.ffprobe_path == "/x/ffprobe"

    @patch("ffsimple.ffutil.subprocess.run")
    def test_broken_binary(self, mock_run, monkeypatch):
        monkeypatch.setenv("FFMPEG_PATH", "/x/ffmpeg")
        monkeypatch.setenv("FFPROBE_PATH", "/x/ffprobe")
        mock_run.side_effect = subprocess.CalledProcessError(1, ["/x/ffmpeg", "-version"])
        with pytest.raises(FFmpegNotFoundError, match="FFmpeg not found"):
            detect_ffmpeg()


# ---------------------------------------------------------------------------
# probe (mocked subprocess)
# ---------------------------------------------------------------------------

PROBE_JSON = {
    "format": {"duration": "60.0"},
    "streams": [
        {
            "codec_type": "video",
            "codec_name": "h264",
            "width": 1920,
            "height": 1080,
            "r_frame_rate": "30/1",
        },
        {
            "codec_type": "audio",
            "codec_name": "aac",
            "channels": 2,
        },
        {"codec_type": "data"},
    ],
}


@pytest.fixture(autouse=True)
def _ffprobe_env(monkeypatch):
    monkeypatch.setenv("FFPROBE_PATH", "ffprobe")


class TestProbe:
    @patch("ffsimple.ffutil.subprocess.run")
    def test_basic(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(PROBE_JSON))
        result = probe(Path("video.mp4"))
        assert result.duration == 60.0
        assert [s.kind for s in result.streams] == ["video", "audio", "other"]
        assert result.video_streams[0].width == 1920
        assert result.audio_streams[0].codec == "aac"
        assert result.audio_streams[0].channels == 2

        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "ffprobe"
        assert cmd[-1] == "video.mp4"
        assert "-show_streams" in cmd

    @patch("ffsimple.ffutil.subprocess.run")
    def test_failure(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="video.mp4: No such file or directory\n")
        with pytest.raises(FFmpegRuntimeError, match="Failed to probe file video.mp4") as exc_info:
            probe(Path("video.mp4"))
        assert exc_info.value.returncode == 1

    @patch("ffsimple.ffutil.subprocess.run", side_effect=PermissionError("denied"))
    def test_spawn_failure(self, mock_run):
        with pytest.raises(FFmpegSpawnError):
            probe(Path("video.mp4"))

    @patch("ffsimple.ffutil.subprocess.run")
    def test_media_duration_missing(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps({"format": {}, "streams": []}))
        assert get_media_duration(Path("x.wav")) == 0.0

    @patch("ffsimple.ffutil.subprocess.run")
    def test_video_dimensions(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(PROBE_JSON))
        assert get_video_dimensions(Path("video.mp4")) == (1920, 1080)

    @patch("ffsimple.ffutil.subprocess.run")
    def test_no_video_stream(self, mock_run):
        data = {"format": {"duration": "60.0"}, "streams": [{"codec_type": "audio"}]}
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(data))
        with pytest.raises(NoVideoStreamError, match="Could not determine video dimensions"):
            get_video_dimensions(Path("audio.wav"))


class TestDecodeProbe:
    def test_not_json(self):
        with pytest.raises(ProbeDecodeError):
            decode_probe("not json")

    def test_wrong_shape(self):
        with pytest.raises(ProbeDecodeError):
            decode_probe(json.dumps({"format": {}, "streams": {"oops": 1}}))

    def test_top_level_list(self):
        with pytest.raises(ProbeDecodeError):
            decode_probe("[]")

    def test_unparseable_duration(self):
        assert decode_probe(json.dumps({"format": {"duration": "N/A"}})).duration is None
