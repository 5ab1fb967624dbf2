"""Thin CLI entry point with one subcommand per editing operation."""

import argparse
import logging
import os
import sys
from pathlib import Path

from ffsimple import ffutil
from ffsimple.analyzers.silence import detect_silences
from ffsimple.editors.audio import delay_audio, format_media, replace_audio
from ffsimple.editors.cut import slice_and_merge
from ffsimple.editors.frames import get_frames
from ffsimple.editors.split import split_file_on_silences
from ffsimple.engine import process
from ffsimple.errors import FFmpegError
from ffsimple.filters import CropPreset, FramePreprocessingPreset
from ffsimple.fsutil import file_exists
from ffsimple.manifest import (
    Manifest,
    SilenceDetectionConfig,
    SplitConfig,
    TranscribeConfig,
    load_manifest,
)

logger = logging.getLogger(__name__)


def _add_silence_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--silence-threshold", type=float, default=-50.0, help="Silence threshold in dB")
    p.add_argument("--silence-duration", type=float, default=0.5, help="Minimum silence duration (seconds)")


def _add_split_args(p: argparse.ArgumentParser) -> None:
    _add_silence_args(p)
    p.add_argument("--chunk-duration", type=float, default=60.0, help="Target chunk length (seconds)")
    p.add_argument("--chunk-min-threshold", type=float, default=0.9, help="Drop chunks shorter than this (seconds)")
    p.add_argument("--padding", type=float, default=0.5, help="Silence appended to each chunk (seconds)")
    p.add_argument("--fast", action="store_true", help="Let ffmpeg use every CPU")


def _silence_config(args) -> SilenceDetectionConfig:
    return SilenceDetectionConfig(
        silence_duration=args.silence_duration,
        silence_threshold=args.silence_threshold,
    )


def _split_config(args) -> SplitConfig:
    return SplitConfig(
        chunk_duration=args.chunk_duration,
        chunk_min_threshold=args.chunk_min_threshold,
        padding=args.padding,
        fast=args.fast,
        silence=_silence_config(args),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ffsimple",
        description="ffsimple: run common ffmpeg edits on audio and video files.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("probe", help="Show media duration and streams")
    p.add_argument("input", type=Path)

    p = sub.add_parser("silences", help="List silent ranges")
    p.add_argument("input", type=Path)
    _add_silence_args(p)

    p = sub.add_parser("split", help="Split a recording into chunks on silences")
    p.add_argument("input", type=Path)
    p.add_argument("--output-dir", "-o", type=Path, help="Directory for the chunks")
    _add_split_args(p)

    p = sub.add_parser("cut", help="Keep only the given ranges and join them")
    p.add_argument("input", type=Path)
    p.add_argument("output", type=Path)
    p.add_argument("ranges", nargs="+", help="Ranges like 0-0:04 or 0:06- (open end runs to the end)")
    p.add_argument("--fast", action="store_true", help="Let ffmpeg use every CPU")

    p = sub.add_parser("format", help="Convert to mono audio with speech cleanup")
    p.add_argument("input", help="Input file, or - to read from stdin")
    p.add_argument("output", type=Path)
    p.add_argument("--no-denoise", action="store_true", help="Skip noise reduction filters")
    p.add_argument("--fast", action="store_true", help="Let ffmpeg use every CPU")

    p = sub.add_parser("frames", help="Extract frames at a fixed interval")
    p.add_argument("input", type=Path)
    p.add_argument("output_dir", type=Path)
    p.add_argument("--frequency", type=float, default=1.0, help="Seconds between frames")
    p.add_argument("--crop", choices=[c.value for c in CropPreset], help="Crop preset")
    p.add_argument(
        "--preprocess",
        choices=[c.value for c in FramePreprocessingPreset],
        help="Frame preprocessing preset",
    )

    p = sub.add_parser("replace-audio", help="Replace a video's audio track")
    p.add_argument("video", type=Path)
    p.add_argument("audio", type=Path)
    p.add_argument("output", type=Path)

    p = sub.add_parser("delay-audio", help="Shift audio against video")
    p.add_argument("input", type=Path)
    p.add_argument("output", type=Path)
    p.add_argument("delay", type=float, help="Seconds; negative plays audio earlier")

    p = sub.add_parser("process", help="Split (and optionally transcribe) a recording")
    p.add_argument("input", nargs="?", type=Path, help="Input media file")
    p.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    p.add_argument("--output-dir", "-o", type=Path, help="Directory for the chunks")
    p.add_argument("--transcribe", action="store_true", help="Transcribe chunks with Whisper")
    p.add_argument("--model", type=str, default="base", help="Whisper model size")
    p.add_argument("--language", type=str, help="Spoken language, autodetected when omitted")
    _add_split_args(p)

    p = sub.add_parser("serve", help="Launch the web API")
    p.add_argument("--port", type=int, default=8321, help="Port to listen on")
    p.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    return parser


def _run(args) -> None:
    if args.command == "probe":
        meta = ffutil.probe(args.input)
        print(f"Duration: {meta.duration}")
        for s in meta.streams:
            details = f"{s.width}x{s.height}" if s.kind == "video" else f"{s.channels} channels"
            print(f"  {s.kind}: {s.codec} ({details})")

    elif args.command == "silences":
        for r in detect_silences(args.input, _silence_config(args)):
            print(f"{r.start:.3f}\t{r.end:.3f}")

    elif args.command == "split":
        chunks = split_file_on_silences(
            args.input,
            output_dir=args.output_dir,
            config=_split_config(args),
            on_chunk=lambda path, i: print(f"  [{i:03d}] {path}"),
        )
        print(f"Done! {len(chunks)} chunks")

    elif args.command == "cut":
        out = slice_and_merge(args.input, args.output, args.ranges, fast=args.fast)
        print(f"Done! Output: {out}")

    elif args.command == "format":
        source = sys.stdin.buffer if args.input == "-" else Path(args.input)
        out = format_media(
            source,
            args.output,
            denoise=not args.no_denoise,
            fast=args.fast,
            on_progress=lambda pct: print(f"  [{pct:5.1f}%]", end="\r"),
        )
        print(f"Done! Output: {out}")

    elif args.command == "frames":
        args.output_dir.mkdir(parents=True, exist_ok=True)
        frames = get_frames(
            args.input,
            args.output_dir,
            args.frequency,
            crop=CropPreset(args.crop) if args.crop else None,
            preprocessing=FramePreprocessingPreset(args.preprocess) if args.preprocess else None,
        )
        for f in frames:
            print(f"{f.start:.3f}\t{f.filename}")

    elif args.command == "replace-audio":
        print(f"Done! Output: {replace_audio(args.video, args.audio, args.output)}")

    elif args.command == "delay-audio":
        print(f"Done! Output: {delay_audio(args.input, args.output, args.delay)}")

    elif args.command == "process":
        if args.manifest:
            m = load_manifest(args.manifest)
        elif args.input:
            m = Manifest(
                input=args.input,
                output=args.output_dir or args.input.with_name(args.input.stem + "_chunks"),
                split=_split_config(args),
                transcribe=TranscribeConfig(
                    enabled=args.transcribe,
                    model=args.model,
                    language=args.language,
                ),
            )
        else:
            print("Error: provide either an INPUT argument or --manifest.", file=sys.stderr)
            sys.exit(1)

        def on_progress(stage: str, frac: float) -> None:
            print(f"  [{frac:3.0%}] {stage}")

        result = process(m, on_progress=on_progress)

        print()
        print(f"Done! {len(result.chunks)} chunks from {result.duration:.1f}s of media")
        for seg in result.transcript_segments:
            print(f"  [{seg.start:7.2f} - {seg.end:7.2f}] {seg.text}")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from ffsimple.web import create_app
        app = create_app()
        print(f"ffsimple web API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    source = getattr(args, "input", None) or getattr(args, "video", None)
    if isinstance(source, Path) and not file_exists(source):
        print(f"Error: {source} does not exist.", file=sys.stderr)
        sys.exit(1)

    try:
        _run(args)
    except (FFmpegError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
