"""Shared test fixtures for the transcript_refiner test suite.

WHY: Reducer, session, source, API and CLI tests all build recognition
events, drive sessions with a controllable clock, and replay the same
short dictation. Centralizing them keeps every module on one sample.

HOW: Pytest fixtures provide an event factory, a manual clock, a
scriptable recognition source, and a sample JSON-lines recording that
contains a provider stream end in the middle.

RULES:
- The sample recording mirrors how the Web Speech API resends its
  result list: finals stay in the list and result_index moves past them
- FakeSource never calls on_end by itself unless auto_end_on_stop is set
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence, Tuple

import pytest

from transcript_refiner.core.ir import RecognitionEvent, ResultItem


def _event(result_index: int, *results: Tuple[str, bool]) -> RecognitionEvent:
    return RecognitionEvent(
        result_index=result_index,
        results=tuple(ResultItem(text=text, is_final=final) for text, final in results),
    )


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """RecognitionSource whose behavior each test scripts."""

    def __init__(self, available: bool = True, auto_end_on_stop: bool = True) -> None:
        self.available = available
        self.auto_end_on_stop = auto_end_on_stop
        self.starts = 0
        self.stops = 0
        self.fail_on_start_number = None
        self.on_event = None
        self.on_end = None

    def is_available(self) -> bool:
        return self.available

    def start(self, on_event, on_end) -> None:
        self.starts += 1
        if self.fail_on_start_number == self.starts:
            raise OSError("microphone busy")
        self.on_event = on_event
        self.on_end = on_end

    def stop(self) -> None:
        self.stops += 1
        if self.auto_end_on_stop and self.on_end is not None:
            self.on_end()


# The sample dictation: two provider streams separated by a stream end.
SAMPLE_RECORDS: List[Dict[str, Any]] = [
    {"type": "result", "result_index": 0, "results": [{"text": "um so", "is_final": False}]},
    {"type": "result", "result_index": 0, "results": [{"text": "um so i think the the plan is good", "is_final": True}]},
    {"type": "result", "result_index": 1, "results": [
        {"text": "um so i think the the plan is good", "is_final": True},
        {"text": "okay", "is_final": False},
    ]},
    {"type": "result", "result_index": 1, "results": [
        {"text": "um so i think the the plan is good", "is_final": True},
        {"text": "okay thanks", "is_final": True},
    ]},
    {"type": "end"},
    {"type": "result", "result_index": 0, "results": [{"text": "see you tomorrow", "is_final": True}]},
]


@pytest.fixture
def make_event():
    """Factory: make_event(result_index, ("text", is_final), ...)."""
    return _event


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    return [dict(r) for r in SAMPLE_RECORDS]


@pytest.fixture
def write_recording(tmp_path):
    """Write records as a .jsonl file and return its path."""

    def _write(records: Sequence[Dict[str, Any]], name: str = "dictation.jsonl"):
        path = tmp_path / name
        path.write_text("\n".join(json.dumps(r) for r in records) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_source():
    """Factory for FakeSource with custom availability or stop behavior."""
    return FakeSource
