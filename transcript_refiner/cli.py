"""Command-line interface for the transcript refiner.

WHY: Dictation sessions recorded as recognition events (or plain text
transcripts) should be cleanable offline, from scripts, with the exact
pipeline the live service uses. The CLI replays the input through a
TranscriptSession and writes the exports next to it.

HOW: Uses argparse to accept an input file, tone and dictation options,
export format selection, and an output directory. A ``.jsonl`` input is
replayed through ReplaySource, including its stream-end records, so
silent restarts behave as they do live. A ``.txt`` input is one final
segment. The cleaned transcript goes to stdout; status messages go to
stderr. --save hands the result to the transcript store.

RULES:
- Positional argument: .jsonl recording or .txt transcript
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts
  (meeting-transcript-2.txt)
- Status output goes to stderr (not stdout)
- Exit code 1 on bad input, unknown formats or a failed save
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from transcript_refiner.config import (
    DEFAULT_DICTATION,
    DEFAULT_TONE,
    MAX_SILENT_RESTARTS,
)
from transcript_refiner.core.ir import SessionSettings, ToneMode
from transcript_refiner.core.session import RestartPolicy, SessionStatus, TranscriptSession
from transcript_refiner.errors import EventFormatError, PersistenceError
from transcript_refiner.formatters import FORMATTERS
from transcript_refiner.formatters.base import FormatterOutput
from transcript_refiner.sources.replay import ReplaySource
from transcript_refiner.store.client import TranscriptStoreClient

SUPPORTED_INPUTS = {".jsonl", ".txt"}


def _status(msg: str) -> None:
    """Print a status message to stderr, flushing immediately."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. meeting-transcript.txt)
    - Conflict: insert a counter before the extension, starting at 2
      (e.g. meeting-transcript-2.txt)
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    # "-transcript.txt" → ("-transcript", ".txt")
    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _parse_formats(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(FORMATTERS.keys())
    keys = [k.strip() for k in raw.split(",") if k.strip()]
    unknown = [k for k in keys if k not in FORMATTERS]
    if unknown:
        _fail("Unknown format(s): {}. Available: {}".format(
            ", ".join(unknown), ", ".join(sorted(FORMATTERS.keys())),
        ))
    return keys


def _load_source(input_path: Path) -> ReplaySource:
    if input_path.suffix.lower() == ".txt":
        return ReplaySource.from_text(input_path.read_text(encoding="utf-8"))
    return ReplaySource.from_path(input_path)


def replay(session: TranscriptSession, source: ReplaySource) -> None:
    """Feed a whole recording through a started session, then stop it.

    Stream-end records restart the source from inside pump(), so a single
    pump covers the recording unless a restart was refused.
    """
    source.pump()
    if session.status is SessionStatus.LISTENING:
        session.stop()


async def _run_pipeline(args: argparse.Namespace) -> None:
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))
    if input_path.suffix.lower() not in SUPPORTED_INPUTS:
        _fail("Unsupported input '{}'. Expected one of: {}".format(
            input_path.suffix, ", ".join(sorted(SUPPORTED_INPUTS)),
        ))

    format_keys = _parse_formats(args.formats)
    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)
    stem = input_path.stem

    try:
        source = _load_source(input_path)
    except EventFormatError as e:
        _fail("{}: {}".format(input_path.name, e))

    _status("Replaying {} ({} records)...".format(input_path.name, source.remaining))
    session = TranscriptSession(
        source=source,
        settings=SessionSettings(dictation_enabled=args.dictation, tone=args.tone),
        restart_policy=RestartPolicy(max_silent_restarts=args.max_restarts),
        on_status=lambda msg: _status("  " + msg),
    )
    session.start()
    replay(session, source)

    update = session.last_update
    if update.repeat_summary:
        _status(update.repeat_summary)

    saved_files: List[Path] = []
    for key in format_keys:
        for output in session.export(key):
            saved_files.append(_save_output(output, stem, output_dir))

    if args.save:
        try:
            async with TranscriptStoreClient() as store:
                receipt = await session.save(store)
        except (PersistenceError, ValueError) as e:
            _fail(str(e))
        _status("Saved to transcript store (id: {})".format(receipt.id))

    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))
    for f in saved_files:
        _status("  {}".format(f.name))

    print(update.cleaned_toned)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="transcript_refiner",
        description="Reconcile and clean speech recognition transcripts: remove "
                    "fillers and repeats, punctuate, paragraph, and adjust tone.",
    )

    parser.add_argument(
        "input_file",
        help="Recognition event recording (.jsonl) or plain transcript (.txt).",
    )

    parser.add_argument(
        "--tone",
        choices=[mode.value for mode in ToneMode],
        default=ToneMode.parse(DEFAULT_TONE).value,
        help="Tone for the cleaned transcript (default: %(default)s).",
    )

    parser.add_argument(
        "--dictation",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_DICTATION,
        help="Replace spoken commands like 'comma' with symbols (default: %(default)s).",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of export formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save export files (default: same as input file).",
    )

    parser.add_argument(
        "--save",
        action="store_true",
        help="Send the original and cleaned transcript to the transcript store.",
    )

    parser.add_argument(
        "--max-restarts",
        type=int,
        default=MAX_SILENT_RESTARTS,
        help="Maximum silent stream restarts (default: unlimited).",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_run_pipeline(args))


if __name__ == "__main__":
    main()
