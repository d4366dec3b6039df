"""Listening session state machine.

WHY: The reducer knows how to fold one event into a transcript, but a
live session also has to start and stop a recognition source, restart it
when the provider silently ends its stream, drop events that arrive after
the user pressed stop, and re-render when the tone changes. This module
owns that lifecycle and the single TranscriptState of the session.

HOW: TranscriptSession moves through

    IDLE ──start()──▶ LISTENING ──stop()──▶ STOPPING ──stream end──▶ IDLE
                        │    ▲
                        └────┘  stream end while listening: silent restart

Events are reduced with core.reconciler.apply_event and every accepted
event produces a TranscriptUpdate, pushed to on_update. Human-readable
status strings go to on_status.

RULES:
- Exactly one TranscriptState per session; only this class replaces it
- Events outside LISTENING are dropped and leave the state untouched
- Stream end while LISTENING restarts the source silently, as long as
  the RestartPolicy allows; a refused or failing restart falls back to
  IDLE and reports status
- The transcript survives stop() until the next start(), so it can
  still be re-toned, exported and saved
- A failed save keeps the transcript for a retry
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from transcript_refiner.config import MAX_SILENT_RESTARTS
from transcript_refiner.core.cleaner import CleaningOptions
from transcript_refiner.core.ir import (
    RecognitionEvent,
    SaveReceipt,
    SessionSettings,
    ToneMode,
    TranscriptExport,
    TranscriptState,
    TranscriptUpdate,
)
from transcript_refiner.core.reconciler import (
    apply_event,
    render,
    restart_stream,
    start_transcript,
    stop_transcript,
)
from transcript_refiner.errors import (
    PersistenceError,
    RestartFailedError,
    UnsupportedCapabilityError,
)
from transcript_refiner.formatters import FORMATTERS
from transcript_refiner.formatters.base import FormatterOutput
from transcript_refiner.sources.base import RecognitionSource
from transcript_refiner.store.client import TranscriptStore

logger = logging.getLogger(__name__)

STATUS_UNSUPPORTED = "Speech recognition not supported."
STATUS_LISTENING = "Listening..."
STATUS_STOPPING = "Stopping..."
STATUS_IDLE = "Idle"
STATUS_SAVED = "Saved"

UpdateCallback = Callable[[TranscriptUpdate], None]
StatusCallback = Callable[[str], None]


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPING = "stopping"


@dataclass(frozen=True)
class RestartPolicy:
    """How many silent restarts a session may perform.

    RULES:
    - max_silent_restarts None means unlimited
    - The count resets every time the session starts
    """

    max_silent_restarts: Optional[int] = MAX_SILENT_RESTARTS

    def allows(self, restarts_done: int) -> bool:
        if self.max_silent_restarts is None:
            return True
        return restarts_done < self.max_silent_restarts


class TranscriptSession:
    """One user's dictation session over a recognition source.

    Args:
        source: Where recognition events come from.
        settings: Dictation and tone toggles, read on every event.
        restart_policy: Bound on silent stream restarts.
        options: Cleaning tunables passed to the renderer.
        clock: Monotonic time source in seconds (injectable for tests).
        on_update: Called with every new TranscriptUpdate.
        on_status: Called with human-readable status messages.
        on_finalized: Called with the last update once listening ends;
            not called when start() itself fails.
    """

    def __init__(
        self,
        source: RecognitionSource,
        settings: SessionSettings | None = None,
        restart_policy: RestartPolicy | None = None,
        options: CleaningOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_update: UpdateCallback | None = None,
        on_status: StatusCallback | None = None,
        on_finalized: UpdateCallback | None = None,
    ) -> None:
        self._source = source
        self.settings = settings or SessionSettings()
        self._policy = restart_policy or RestartPolicy()
        self._options = options
        self._clock = clock
        self._on_update = on_update
        self._on_status = on_status
        self._on_finalized = on_finalized

        self._status = SessionStatus.IDLE
        self._state = TranscriptState()
        self._last_update = render(self._state, self.settings.tone, options=options)
        self._restarts = 0
        self.status_message = STATUS_IDLE

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def state(self) -> TranscriptState:
        return self._state

    @property
    def last_update(self) -> TranscriptUpdate:
        return self._last_update

    @property
    def restarts(self) -> int:
        return self._restarts

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Clear the transcript and begin listening.

        Raises:
            UnsupportedCapabilityError: If the source is unavailable.
        """
        if not self._source.is_available():
            self._report(STATUS_UNSUPPORTED)
            raise UnsupportedCapabilityError(STATUS_UNSUPPORTED)
        if self._status is not SessionStatus.IDLE:
            logger.debug("start() ignored in state %s", self._status.value)
            return

        self._state = start_transcript(self._clock())
        self._restarts = 0
        self._publish(render(self._state, self.settings.tone, options=self._options))
        self._status = SessionStatus.LISTENING
        try:
            self._source.start(self.handle_event, self.handle_stream_end)
        except Exception as exc:
            self._fall_back_to_idle("Start failed: {}".format(exc), finalized=False)
            raise
        logger.info("Session started")
        self._report(STATUS_LISTENING)

    def stop(self) -> None:
        """Stop listening; the source confirms with a stream end."""
        if self._status is not SessionStatus.LISTENING:
            return
        self._state = stop_transcript(self._state)
        self._status = SessionStatus.STOPPING
        self._report(STATUS_STOPPING)
        self._source.stop()

    def handle_event(self, event: RecognitionEvent) -> TranscriptUpdate | None:
        """Reduce one recognition event and publish the new update.

        Returns:
            The update, or None when the event was dropped.
        """
        if self._status is not SessionStatus.LISTENING:
            logger.debug("Dropping event in state %s", self._status.value)
            return None
        self._state = apply_event(
            self._state,
            event,
            dictation_enabled=self.settings.dictation_enabled,
            now=self._clock(),
        )
        update = render(self._state, self.settings.tone, options=self._options)
        self._publish(update)
        return update

    def handle_stream_end(self) -> None:
        """React to the provider closing its stream."""
        if self._status is SessionStatus.STOPPING:
            self._status = SessionStatus.IDLE
            logger.info("Session stopped")
            self._report(STATUS_IDLE)
            if self._on_finalized:
                self._on_finalized(self._last_update)
            return
        if self._status is not SessionStatus.LISTENING:
            return

        if not self._policy.allows(self._restarts):
            logger.warning(
                "Restart limit reached after %d silent restarts", self._restarts,
            )
            self._fall_back_to_idle(
                "Stream ended after {} restarts.".format(self._restarts)
            )
            return

        try:
            self._restart()
        except RestartFailedError as exc:
            logger.warning("%s", exc)
            self._fall_back_to_idle("Restart failed: {}".format(exc.__cause__ or exc))
            return
        self._report(STATUS_LISTENING)

    def _restart(self) -> None:
        try:
            self._source.start(self.handle_event, self.handle_stream_end)
        except Exception as exc:
            raise RestartFailedError("Could not restart recognition stream") from exc
        self._restarts += 1
        self._state = restart_stream(self._state, self._clock())
        logger.debug("Silent restart #%d", self._restarts)

    def _fall_back_to_idle(self, message: str, finalized: bool = True) -> None:
        self._state = stop_transcript(self._state)
        self._status = SessionStatus.IDLE
        self._report(message)
        if finalized and self._on_finalized:
            self._on_finalized(self._last_update)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_tone(self, mode: ToneMode | str | None) -> TranscriptUpdate | None:
        """Switch tone and re-render the current transcript.

        The reconciliation state is not touched; this is a pure re-render
        of the last snapshot. Returns None when there is nothing to show.
        """
        self.settings.tone = ToneMode.parse(mode)
        if not self._state.has_content:
            return None
        update = render(self._state, self.settings.tone, options=self._options)
        self._publish(update)
        return update

    def set_dictation(self, enabled: bool) -> None:
        """Toggle dictation commands; applies from the next event on."""
        self.settings.dictation_enabled = bool(enabled)

    # ------------------------------------------------------------------
    # Persistence and export
    # ------------------------------------------------------------------

    async def save(self, store: TranscriptStore) -> SaveReceipt:
        """Hand the current (original, cleaned) pair to the store.

        Raises:
            PersistenceError: If there is nothing to save or the store
                fails. The transcript is kept either way.
        """
        update = self._last_update
        if not update.original_text and not update.cleaned_toned:
            self._report("Nothing to save")
            raise PersistenceError("Nothing to save")
        try:
            receipt = await store.save_transcript(update.original_text, update.cleaned_toned)
        except PersistenceError as exc:
            logger.warning("Save failed: %s", exc)
            self._report(getattr(exc, "message", None) or "Save failed")
            raise
        self._report(STATUS_SAVED)
        return receipt

    def export(self, format_key: str = "export_text") -> list[FormatterOutput]:
        """Render the current transcript with a registered formatter.

        Raises:
            KeyError: If format_key is not in FORMATTERS.
        """
        formatter = FORMATTERS[format_key]()
        return formatter.format(TranscriptExport.from_update(self._last_update))

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _publish(self, update: TranscriptUpdate) -> None:
        self._last_update = update
        if self._on_update:
            self._on_update(update)

    def _report(self, message: str) -> None:
        self.status_message = message
        if self._on_status:
            self._on_status(message)
