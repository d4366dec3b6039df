"""Recognition source interface.

WHY: The session never touches a microphone or a network socket. It only
needs something that delivers RecognitionEvents in order and says when
its stream ended. Keeping that capability behind a small protocol lets
the CLI replay recordings, the server accept events pushed by a browser,
and tests drive sessions by hand.

HOW: A typing.Protocol with three methods. The session passes its own
handlers to start(); the source calls on_event for each batch and on_end
when the provider stream closes (including after stop()).

RULES:
- start() may be called again after on_end to open a fresh stream
- stop() must eventually lead to on_end being called
- is_available() False means sessions refuse to start
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from transcript_refiner.core.ir import RecognitionEvent

EventHandler = Callable[[RecognitionEvent], object]
EndHandler = Callable[[], None]


class RecognitionSource(Protocol):
    def is_available(self) -> bool:
        ...

    def start(self, on_event: EventHandler, on_end: EndHandler) -> None:
        ...

    def stop(self) -> None:
        ...
