"""Streaming reconciliation: fold recognition events into a transcript.

WHY: A recognition provider revises its guesses as audio arrives. Interim
segments are rewritten many times, final segments never change. The
reconciler merges that stream into two stable cumulative transcripts (raw
and dictation-processed) without ever rewriting what was committed.

HOW: Plain functions over the frozen TranscriptState:
  start_transcript  — a cleared, listening state
  restart_stream    — the provider opened a new stream (auto-restart)
  apply_event       — the reducer: (state, event) → new state
  stop_transcript   — listening cleared; later events become no-ops
  render            — derive the TranscriptUpdate a host displays

RULES:
- apply_event on a non-listening state returns the state unchanged
- Finals are handled in array order and appended; *_final only grows
- The interim fields are replaced wholesale by this event's interims
- result_floor skips results already committed in the current stream, so
  a provider re-sending a final segment never duplicates it
- latency_ms is measured from the last (re)start of the provider stream
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List

from transcript_refiner.core.cleaner import CleaningOptions, clean_text
from transcript_refiner.core.dictation import apply_dictation
from transcript_refiner.core.ir import (
    RecognitionEvent,
    ToneMode,
    TranscriptState,
    TranscriptUpdate,
)
from transcript_refiner.core.repeats import (
    find_suggestions,
    highlight_repeats,
    repeat_summary,
    suggestions_text,
)
from transcript_refiner.core.tone import apply_tone

logger = logging.getLogger(__name__)


def finalize_segment(text: str) -> str:
    """Turn one final segment into a sentence ready for appending.

    Trims, uppercases the first character, adds "." unless the segment
    already ends in terminal punctuation, and appends a separating space.
    Blank segments finalize to "".
    """
    text = (text or "").strip()
    if not text:
        return ""
    text = text[0].upper() + text[1:]
    if text[-1] not in ".!?":
        text += "."
    return text + " "


def start_transcript(now: float) -> TranscriptState:
    """Return a cleared state for a new listening session."""
    return TranscriptState(
        listening=True,
        session_started_at=now,
        stream_started_at=now,
    )


def restart_stream(state: TranscriptState, now: float) -> TranscriptState:
    """Record that the provider started a fresh result stream.

    Cumulative text is untouched. The new stream numbers its results
    from zero, so the floor resets.
    """
    return dataclasses.replace(state, stream_started_at=now, result_floor=0)


def stop_transcript(state: TranscriptState) -> TranscriptState:
    return dataclasses.replace(state, listening=False)


def apply_event(
    state: TranscriptState,
    event: RecognitionEvent,
    *,
    dictation_enabled: bool,
    now: float,
) -> TranscriptState:
    """Fold one recognition event into the transcript state.

    Args:
        state: Current state.
        event: The provider batch; results before event.result_index (and
            before the state's result_floor) are ignored.
        dictation_enabled: Apply spoken punctuation commands.
        now: Current monotonic time in seconds.

    Returns:
        The next state, or `state` itself when not listening.
    """
    if not state.listening:
        logger.debug("Dropping event at index %d: not listening", event.result_index)
        return state

    start = max(event.result_index, state.result_floor, 0)
    original_final = state.original_final
    processed_final = state.processed_final
    original_interim: List[str] = []
    processed_interim: List[str] = []
    floor = start
    contiguous = True

    for item in event.results[start:]:
        if item.is_final:
            original_final += item.text + " "
            processed_final += finalize_segment(apply_dictation(item.text, dictation_enabled))
            if contiguous:
                floor += 1
        else:
            contiguous = False
            original_interim.append(item.text)
            processed_interim.append(apply_dictation(item.text, dictation_enabled))

    latency_ms = max(0, int(round((now - state.stream_started_at) * 1000)))

    return dataclasses.replace(
        state,
        original_final=original_final,
        original_interim="".join(original_interim),
        processed_final=processed_final,
        processed_interim="".join(processed_interim),
        result_floor=floor,
        latency_ms=latency_ms,
    )


def render(
    state: TranscriptState,
    tone: ToneMode | str | None = ToneMode.NONE,
    *,
    options: CleaningOptions | None = None,
) -> TranscriptUpdate:
    """Derive everything a presentation layer shows for `state`.

    Cleaning runs on the processed text; suggestions come from the raw
    text so the speaker's actual repetitions are reported.
    """
    mode = ToneMode.parse(tone)
    original = state.original_text
    processed = state.display_processed
    cleaned = clean_text(processed, options)
    return TranscriptUpdate(
        original_text=original,
        display_processed=processed,
        processed_markup=highlight_repeats(processed),
        cleaned_toned=apply_tone(cleaned, mode),
        suggestions_text=suggestions_text(original),
        repeat_summary=repeat_summary(processed),
        latency_ms=state.latency_ms,
        tone=mode,
        suggestions=tuple(find_suggestions(original)),
    )
