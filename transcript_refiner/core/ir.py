"""Intermediate representation dataclasses for streaming transcripts.

WHY: Recognition providers deliver batches of interim and final segments;
the presentation layer needs raw text, cleaned text, markup, and
diagnostics. The IR gives both sides one well-typed vocabulary so the
reducer, the session, the formatters, and the HTTP API never pass raw
dicts around.

HOW: Small dataclasses form the hierarchy:
  ResultItem        — one recognized segment (text + final flag)
  RecognitionEvent  — an ordered batch of ResultItems and its result_index
  TranscriptState   — cumulative text for ONE listening session (immutable)
  TranscriptUpdate  — everything a presentation layer renders per event
  SessionSettings   — runtime toggles (dictation, tone)
  TranscriptExport  — the snapshot export formatters consume

RULES:
- TranscriptState is frozen; the reducer returns a new instance per event
- *_final fields only grow within a session; *_interim fields are replaced
- ToneMode is a closed set; unknown strings resolve to ToneMode.NONE
- All timestamps are float seconds from a monotonic clock
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


class ToneMode(str, enum.Enum):
    """Lexical substitution style applied after cleaning.

    Inherits from str so values serialize cleanly to JSON and compare
    equal to the plain strings used in settings.
    """

    NONE = "none"
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    CHAT = "chat"

    @classmethod
    def parse(cls, value: Any) -> ToneMode:
        """Resolve a mode from a string, falling back to NONE."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class SubstitutionRule:
    """A compiled text matcher and its replacement string."""

    pattern: re.Pattern[str]
    replacement: str


@dataclass(frozen=True)
class ResultItem:
    """A single recognized segment from the provider.

    RULES:
    - text: the provider's transcript, untouched
    - is_final: True once the provider will no longer revise this segment
    """

    text: str
    is_final: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ResultItem:
        return cls(text=str(data.get("text", "")), is_final=bool(data.get("is_final", False)))


@dataclass(frozen=True)
class RecognitionEvent:
    """An ordered batch of results delivered by the recognition source.

    WHY: Providers like the Web Speech API resend their whole result list
    for the current stream and flag where the changes start. Keeping the
    same shape lets the reducer skip segments it has already committed.

    RULES:
    - result_index: position of the first result not yet processed
    - results: the stream's result list; items before result_index are
      ignored by the reducer
    """

    result_index: int
    results: Tuple[ResultItem, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecognitionEvent:
        return cls(
            result_index=int(data.get("result_index", 0)),
            results=tuple(ResultItem.from_dict(r) for r in data.get("results", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result_index": self.result_index,
            "results": [{"text": r.text, "is_final": r.is_final} for r in self.results],
        }


@dataclass(frozen=True)
class TranscriptState:
    """Cumulative transcript text for one listening session.

    WHY: Keeping the four transcript strings in one immutable value lets
    the reducer be a plain function and lets tests
    replay any event sequence deterministically.

    RULES:
    - original_*: raw provider text, no dictation substitution
    - processed_*: dictation-substituted text; finals are sentence-finalized
    - original_final / processed_final never shrink during a session
    - result_floor: low-water mark into the current stream's result list;
      reset to 0 whenever the provider stream restarts
    - stream_started_at: time of the last (re)start, basis for latency
    """

    original_final: str = ""
    original_interim: str = ""
    processed_final: str = ""
    processed_interim: str = ""
    listening: bool = False
    session_started_at: float = 0.0
    stream_started_at: float = 0.0
    result_floor: int = 0
    latency_ms: int = 0

    @property
    def original_text(self) -> str:
        return (self.original_final + self.original_interim).strip()

    @property
    def display_processed(self) -> str:
        return (self.processed_final + self.processed_interim).strip()

    @property
    def has_content(self) -> bool:
        return bool(self.original_text or self.display_processed)


@dataclass(frozen=True)
class Suggestion:
    """A repeated word found in the raw transcript."""

    word: str

    def describe(self) -> str:
        return '• Repeated: "{}" → Suggestion: remove one'.format(self.word)


@dataclass
class SessionSettings:
    """Runtime toggles read on every processed event."""

    dictation_enabled: bool = False
    tone: ToneMode = ToneMode.NONE

    def __post_init__(self) -> None:
        self.tone = ToneMode.parse(self.tone)


@dataclass(frozen=True)
class TranscriptUpdate:
    """Everything the presentation layer renders after one event.

    RULES:
    - original_text: trimmed raw final + interim text
    - display_processed: trimmed processed final + interim text (plain)
    - processed_markup: display_processed with repeat highlight spans
    - cleaned_toned: clean_text(display_processed) rewritten in `tone`
    - suggestions_text: repeat suggestions for original_text, or the
      "no repeats" sentinel
    - repeat_summary: "Repeated detected: ..." for display_processed, or ""
    """

    original_text: str = ""
    display_processed: str = ""
    processed_markup: str = ""
    cleaned_toned: str = ""
    suggestions_text: str = ""
    repeat_summary: str = ""
    latency_ms: int = 0
    tone: ToneMode = ToneMode.NONE
    suggestions: Tuple[Suggestion, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_text": self.original_text,
            "display_processed": self.display_processed,
            "processed_markup": self.processed_markup,
            "cleaned_toned": self.cleaned_toned,
            "suggestions_text": self.suggestions_text,
            "repeat_summary": self.repeat_summary,
            "latency_ms": self.latency_ms,
            "tone": self.tone.value,
        }


@dataclass(frozen=True)
class SaveReceipt:
    """Acknowledgement returned by the transcript store after a save."""

    id: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(frozen=True)
class TranscriptExport:
    """The content every export format is built from.

    RULES:
    - processed: plain processed text, no highlight markup
    - tone: label of the tone the cleaned text was rewritten in
    """

    original: str
    processed: str
    cleaned_toned: str
    tone: ToneMode
    suggestions_text: str
    repeated_words: Tuple[str, ...] = ()

    @classmethod
    def from_update(cls, update: TranscriptUpdate) -> TranscriptExport:
        return cls(
            original=update.original_text,
            processed=update.display_processed,
            cleaned_toned=update.cleaned_toned,
            tone=update.tone,
            suggestions_text=update.suggestions_text,
            repeated_words=tuple(s.word for s in update.suggestions),
        )
