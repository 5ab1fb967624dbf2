#!/usr/bin/env python3
"""Generate a synthetic speech-like recording for split/silence testing.

Produces a mono WAV of alternating tone and silence:
  every 5s period: 3s 440 Hz tone, then 2s of silence
so silencedetect reports silences starting at 3, 8, 13, ...
"""

import sys
from pathlib import Path

from ffsimple.models import FilePath, Invocation
from ffsimple.process import run_ffmpeg


def tone_with_pauses_source(duration: float) -> str:
    return f"aevalsrc='if(lt(mod(t,5),3),0.5*sin(2*PI*440*t),0)':s=16000:d={duration}"


def generate_test_audio(output: Path, duration: float = 20.0) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    run_ffmpeg(
        Invocation(
            inputs=(FilePath(Path(tone_with_pauses_source(duration))),),
            output=FilePath(output),
            overwrite=True,
            input_options=("-f", "lavfi"),
        )
    )
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/tone_pauses.wav")
    generate_test_audio(out)
