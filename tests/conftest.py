"""Shared test fixtures."""

import shutil
import sys
import textwrap
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"

requires_ffmpeg = pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg/ffprobe not installed",
)


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def fake_ffmpeg(tmp_path, monkeypatch):
    """Install a Python script as the ffmpeg binary.

    Usage: ``fake_ffmpeg('''sys.stderr.write("hi\\n")''')``. The body runs
    with ``sys`` and ``time`` imported.
    """

    def install(body: str) -> Path:
        script = tmp_path / "fake_ffmpeg"
        script.write_text(
            f"#!{sys.executable}\n"
            "import sys\n"
            "import time\n"
            + textwrap.dedent(body)
        )
        script.chmod(0o755)
        monkeypatch.setenv("FFMPEG_PATH", str(script))
        return script

    return install
