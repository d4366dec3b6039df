"""Recognition source fed by an external caller.

WHY: In the HTTP service the recognizer runs in the user's browser, which
posts each result batch to the server. PushSource adapts those pushes to
the RecognitionSource protocol so the server drives the same
TranscriptSession as the CLI.
"""

from __future__ import annotations

import logging

from transcript_refiner.core.ir import RecognitionEvent
from transcript_refiner.sources.base import EndHandler, EventHandler

logger = logging.getLogger(__name__)


class PushSource:
    def __init__(self) -> None:
        self._on_event: EventHandler | None = None
        self._on_end: EndHandler | None = None
        self._active = False
        self.streams_started = 0

    @property
    def active(self) -> bool:
        return self._active

    def is_available(self) -> bool:
        return True

    def start(self, on_event: EventHandler, on_end: EndHandler) -> None:
        self._on_event = on_event
        self._on_end = on_end
        self._active = True
        self.streams_started += 1

    def stop(self) -> None:
        self.end_stream()

    def push(self, event: RecognitionEvent) -> object:
        """Forward one event to the session and return its result."""
        if self._on_event is None:
            logger.debug("Push before start; event dropped")
            return None
        return self._on_event(event)

    def end_stream(self) -> None:
        """Report that the provider stream closed."""
        if not self._active:
            return
        self._active = False
        if self._on_end is not None:
            self._on_end()
