"""Unit tests for the stderr diagnostic parsers."""

import pytest

from ffsimple.diagnostics import (
    LineSplitter,
    compute_percent,
    parse_duration,
    parse_error,
    parse_progress,
    parse_version,
    timecode_to_seconds,
)


class TestTimecodeToSeconds:
    def test_basic(self):
        assert timecode_to_seconds("01:02:03.50") == 3723.5

    def test_zero(self):
        assert timecode_to_seconds("00:00:00.00") == 0.0

    @pytest.mark.parametrize("bad", ["", "12", "00:05", "a:b:c", "00:00:-1", "N/A"])
    def test_malformed_is_zero(self, bad):
        assert timecode_to_seconds(bad) == 0.0


class TestParseDuration:
    def test_duration_line(self):
        line = "  Duration: 00:00:33.59, start: 0.000000, bitrate: 256 kb/s"
        assert parse_duration(line) == pytest.approx(33.59)

    def test_hours(self):
        assert parse_duration("Duration: 02:00:01.00") == pytest.approx(7201.0)

    def test_no_duration(self):
        assert parse_duration("Stream #0:0: Audio: pcm_s16le") is None

    def test_not_available(self):
        assert parse_duration("  Duration: N/A, bitrate: N/A") is None


class TestComputePercent:
    def test_midway(self):
        assert compute_percent(5, 10) == 50.0

    def test_clamped_high(self):
        assert compute_percent(12, 10) == 100.0

    def test_clamped_low(self):
        assert compute_percent(-1, 10) == 0.0

    def test_unknown_duration(self):
        assert compute_percent(5, 0) is None

    def test_monotonic(self):
        values = [compute_percent(t / 2, 10) for t in range(30)]
        assert values == sorted(values)
        assert all(0 <= v <= 100 for v in values)


STATS_LINE = (
    "frame=  123 fps= 45 q=28.0 size=    1024kB time=00:00:05.00 "
    "bitrate=1677.7kbits/s speed=1.23x"
)


class TestParseProgress:
    def test_full_stats_line(self):
        snap = parse_progress(STATS_LINE, duration=10.0)
        assert snap.frames == 123
        assert snap.fps == 45.0
        assert snap.size == "1024kB"
        assert snap.timemark == "00:00:05.00"
        assert snap.bitrate == "1677.7kbits/s"
        assert snap.speed == "1.23x"
        assert snap.percent == 50.0

    def test_no_duration_no_percent(self):
        assert parse_progress(STATS_LINE).percent is None

    def test_audio_only_line(self):
        snap = parse_progress("size=     256kB time=00:00:08.00 bitrate= 262.1kbits/s speed=16x")
        assert snap.frames is None
        assert snap.timemark == "00:00:08.00"

    def test_non_progress_line(self):
        assert parse_progress("Input #0, wav, from 'in.wav':") is None

    def test_malformed_time_gives_zero_percent(self):
        snap = parse_progress("time=N/A bitrate=N/A speed=N/A", duration=10.0)
        assert snap.timemark == "N/A"
        assert snap.percent == 0.0


class TestParseError:
    @pytest.mark.parametrize("line", [
        "in.wav: No such file or directory",
        "Error opening input files: Invalid data found when processing input",
        "out.wav: Permission denied",
        "Encoder not found",
    ])
    def test_error_lines(self, line):
        assert parse_error("  " + line + " ") == line

    def test_plain_line(self):
        assert parse_error("Stream mapping:") is None


class TestParseVersion:
    def test_version(self):
        out = "ffmpeg version 6.1.1-3ubuntu5 Copyright (c) 2000-2023 the FFmpeg developers\n"
        assert parse_version(out) == "6.1.1-3ubuntu5"

    def test_unknown(self):
        assert parse_version("garbage") == "unknown"


class TestLineSplitter:
    def test_splits_on_all_line_breaks(self):
        s = LineSplitter()
        assert s.feed(b"a\nb\r\nc\rd") == ["a", "b", "c"]
        assert s.flush() == ["d"]

    def test_partial_line_held(self):
        s = LineSplitter()
        assert s.feed(b"Dura") == []
        assert s.feed(b"tion: 00:00:01.00\n") == ["Duration: 00:00:01.00"]

    def test_multibyte_split_across_reads(self):
        s = LineSplitter()
        data = "café\n".encode("utf-8")
        assert s.feed(data[:4]) == []
        assert s.feed(data[4:]) == ["café"]

    def test_blank_lines_dropped(self):
        s = LineSplitter()
        assert s.feed(b"\n\n  \nx\n") == ["x"]

    def test_flush_empty(self):
        assert LineSplitter().flush() == []
