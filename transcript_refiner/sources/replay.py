"""Replay recorded recognition events from JSON lines.

WHY: Speech sessions are hard to reproduce. A recording of the events a
provider delivered (one JSON object per line) can be cleaned offline by
the CLI, diffed between versions, and used as a test fixture.

HOW: Each line is validated with jsonschema against RECORD_SCHEMA and
turned into either a RecognitionEvent or an end-of-stream marker.
ReplaySource implements the RecognitionSource protocol; pump() feeds the
records to the session one at a time while the stream is open.

Record shapes:
    {"type": "result", "result_index": 0,
     "results": [{"text": "hello", "is_final": true}]}
    {"type": "end"}

RULES:
- Blank lines are skipped
- Invalid JSON or schema violations raise EventFormatError with the
  1-based line number
- An "end" record closes the stream and calls on_end; records after it
  are only delivered if the session restarts the stream
- stop() closes the stream and calls on_end
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import jsonschema

from transcript_refiner.core.ir import RecognitionEvent, ResultItem
from transcript_refiner.errors import EventFormatError
from transcript_refiner.sources.base import EndHandler, EventHandler

logger = logging.getLogger(__name__)

RECORD_SCHEMA: Dict[str, Any] = {
    "oneOf": [
        {
            "type": "object",
            "required": ["type", "results"],
            "properties": {
                "type": {"const": "result"},
                "result_index": {"type": "integer", "minimum": 0},
                "results": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["text"],
                        "properties": {
                            "text": {"type": "string"},
                            "is_final": {"type": "boolean"},
                        },
                    },
                },
            },
        },
        {
            "type": "object",
            "required": ["type"],
            "properties": {"type": {"const": "end"}},
        },
    ]
}

# A None entry in a parsed recording marks the end of a provider stream.
Record = Optional[RecognitionEvent]


def parse_record(data: Any, line: int | None = None) -> Record:
    """Validate one decoded record and convert it.

    Raises:
        EventFormatError: If the record does not match RECORD_SCHEMA.
    """
    try:
        jsonschema.validate(instance=data, schema=RECORD_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise EventFormatError(exc.message, line=line) from exc
    if data["type"] == "end":
        return None
    return RecognitionEvent.from_dict(data)


def parse_lines(lines: Iterable[str]) -> List[Record]:
    records: List[Record] = []
    for number, raw in enumerate(lines, start=1):
        raw = raw.strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise EventFormatError("invalid JSON: {}".format(exc.msg), line=number) from exc
        records.append(parse_record(data, line=number))
    return records


class ReplaySource:
    """RecognitionSource that plays back a fixed list of records.

    Args:
        records: Parsed records; None entries mark provider stream ends.
    """

    def __init__(self, records: List[Record]) -> None:
        self._records = list(records)
        self._cursor = 0
        self._active = False
        self._on_event: EventHandler | None = None
        self._on_end: EndHandler | None = None
        self.streams_started = 0

    @classmethod
    def from_path(cls, path: Path) -> ReplaySource:
        """Load a JSON-lines recording from disk."""
        with open(path, encoding="utf-8") as f:
            return cls(parse_lines(f))

    @classmethod
    def from_text(cls, text: str) -> ReplaySource:
        """Treat a whole plain text transcript as one final segment."""
        event = RecognitionEvent(result_index=0, results=(ResultItem(text=text, is_final=True),))
        return cls([event])

    @property
    def remaining(self) -> int:
        return len(self._records) - self._cursor

    def is_available(self) -> bool:
        return True

    def start(self, on_event: EventHandler, on_end: EndHandler) -> None:
        self._on_event = on_event
        self._on_end = on_end
        self._active = True
        self.streams_started += 1

    def stop(self) -> None:
        self._close_stream()

    def pump(self) -> int:
        """Deliver records until the stream closes or the recording ends.

        Returns:
            The number of records consumed.
        """
        consumed = 0
        while self._active and self._cursor < len(self._records):
            record = self._records[self._cursor]
            self._cursor += 1
            consumed += 1
            if record is None:
                logger.debug("Replay reached stream end at record %d", self._cursor)
                self._close_stream()
            elif self._on_event is not None:
                self._on_event(record)
        return consumed

    def _close_stream(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_end is not None:
            self._on_end()
