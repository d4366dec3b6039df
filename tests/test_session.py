"""Tests for the listening session state machine.

WHY: The session decides which events reach the transcript, when the
recognition stream is restarted, and what survives a stop. Mistakes here
show up as ghost text after stopping or as sessions that die on the
first provider timeout.

HOW: Sessions run over the FakeSource and FakeClock fixtures; tests call
the source's handlers directly, as a real recognizer would.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from transcript_refiner.core.ir import SaveReceipt, SessionSettings, ToneMode
from transcript_refiner.core.session import (
    STATUS_IDLE,
    STATUS_LISTENING,
    STATUS_STOPPING,
    STATUS_UNSUPPORTED,
    RestartPolicy,
    SessionStatus,
    TranscriptSession,
)
from transcript_refiner.errors import PersistenceError, UnsupportedCapabilityError
from transcript_refiner.store.client import TranscriptStoreClient, TranscriptStoreError


def _session(source, clock, **kwargs):
    statuses = []
    updates = []
    session = TranscriptSession(
        source=source,
        clock=clock,
        on_status=statuses.append,
        on_update=updates.append,
        **kwargs,
    )
    return session, statuses, updates


class TestStart:

    def test_unsupported_source(self, make_source, fake_clock):
        session, statuses, _ = _session(make_source(available=False), fake_clock)
        with pytest.raises(UnsupportedCapabilityError):
            session.start()
        assert session.status is SessionStatus.IDLE
        assert statuses == [STATUS_UNSUPPORTED]

    def test_start_listens(self, fake_source, fake_clock):
        session, statuses, _ = _session(fake_source, fake_clock)
        session.start()
        assert session.status is SessionStatus.LISTENING
        assert fake_source.starts == 1
        assert statuses[-1] == STATUS_LISTENING
        assert session.state.session_started_at == fake_clock.now

    def test_start_twice_is_ignored(self, fake_source, fake_clock):
        session, _, _ = _session(fake_source, fake_clock)
        session.start()
        session.start()
        assert fake_source.starts == 1

    def test_start_clears_previous_transcript(self, fake_source, fake_clock, make_event):
        session, _, _ = _session(fake_source, fake_clock)
        session.start()
        session.handle_event(make_event(0, ("first take", True)))
        session.stop()
        session.start()
        assert session.state.original_text == ""
        assert session.last_update.original_text == ""

    def test_source_start_failure_falls_back_to_idle(self, fake_source, fake_clock):
        fake_source.fail_on_start_number = 1
        session, statuses, _ = _session(fake_source, fake_clock)
        with pytest.raises(OSError):
            session.start()
        assert session.status is SessionStatus.IDLE
        assert statuses[-1].startswith("Start failed")

    def test_source_start_failure_is_not_finalized(self, fake_source, fake_clock):
        fake_source.fail_on_start_number = 1
        finalized = []
        session, _, _ = _session(fake_source, fake_clock, on_finalized=finalized.append)
        with pytest.raises(OSError):
            session.start()
        assert finalized == []


class TestEvents:

    def test_event_produces_update(self, fake_source, fake_clock, make_event):
        session, _, updates = _session(fake_source, fake_clock)
        session.start()
        fake_clock.advance(0.5)
        update = fake_source.on_event(make_event(0, ("hello world", True)))

        assert update is session.last_update
        assert updates[-1] is update
        assert update.display_processed == "Hello world."
        assert update.cleaned_toned == "Hello world."
        assert update.latency_ms == 500

    def test_settings_read_per_event(self, fake_source, fake_clock, make_event):
        session, _, _ = _session(fake_source, fake_clock)
        session.start()
        session.handle_event(make_event(0, ("one comma two", True)))
        session.set_dictation(True)
        session.handle_event(make_event(1, ("one comma two", True), ("three comma four", True)))
        assert session.state.processed_final == "One comma two. Three, four. "


class TestStop:

    def test_stop_waits_for_stream_end(self, make_source, fake_clock, make_event):
        source = make_source(auto_end_on_stop=False)
        finalized = []
        session, statuses, _ = _session(source, fake_clock, on_finalized=finalized.append)
        session.start()
        session.handle_event(make_event(0, ("keep this", True)))
        session.stop()

        assert session.status is SessionStatus.STOPPING
        assert statuses[-1] == STATUS_STOPPING
        assert source.stops == 1

        source.on_end()
        assert session.status is SessionStatus.IDLE
        assert statuses[-1] == STATUS_IDLE
        assert finalized == [session.last_update]

    def test_late_event_while_stopping_is_dropped(self, make_source, fake_clock, make_event):
        source = make_source(auto_end_on_stop=False)
        session, _, updates = _session(source, fake_clock)
        session.start()
        session.handle_event(make_event(0, ("kept", True)))
        session.stop()
        state_before = session.state
        count_before = len(updates)

        assert session.handle_event(make_event(1, ("kept", True), ("late", True))) is None
        assert session.state is state_before
        assert len(updates) == count_before

    def test_late_event_after_idle_is_dropped(self, fake_source, fake_clock, make_event):
        session, _, _ = _session(fake_source, fake_clock)
        session.start()
        session.handle_event(make_event(0, ("kept", True)))
        session.stop()
        assert session.status is SessionStatus.IDLE

        state_before = session.state
        assert fake_source.on_event(make_event(0, ("late", True))) is None
        assert session.state is state_before
        assert "late" not in session.last_update.original_text

    def test_stop_when_idle_is_noop(self, fake_source, fake_clock):
        session, statuses, _ = _session(fake_source, fake_clock)
        session.stop()
        assert fake_source.stops == 0
        assert statuses == []


class TestAutoRestart:

    def test_stream_end_restarts_silently(self, fake_source, fake_clock, make_event):
        session, statuses, _ = _session(fake_source, fake_clock)
        session.start()
        session.handle_event(make_event(0, ("before", True)))
        fake_clock.advance(60)
        fake_source.on_end()

        assert session.status is SessionStatus.LISTENING
        assert fake_source.starts == 2
        assert session.restarts == 1
        assert session.state.result_floor == 0
        assert session.state.stream_started_at == fake_clock.now
        assert statuses[-1] == STATUS_LISTENING

        session.handle_event(make_event(0, ("after", True)))
        assert session.state.processed_final == "Before. After. "

    def test_none_means_unlimited(self, fake_source, fake_clock):
        session, _, _ = _session(fake_source, fake_clock, restart_policy=RestartPolicy(None))
        session.start()
        for _ in range(25):
            fake_source.on_end()
        assert session.status is SessionStatus.LISTENING
        assert session.restarts == 25

    def test_bounded_policy_falls_back_to_idle(self, fake_source, fake_clock, make_event):
        session, statuses, _ = _session(
            fake_source, fake_clock, restart_policy=RestartPolicy(max_silent_restarts=1),
        )
        session.start()
        session.handle_event(make_event(0, ("text", True)))
        fake_source.on_end()
        assert session.status is SessionStatus.LISTENING
        fake_source.on_end()

        assert session.status is SessionStatus.IDLE
        assert statuses[-1] == "Stream ended after 1 restarts."
        assert session.last_update.original_text == "text"

    def test_failing_restart_reports_and_goes_idle(self, fake_source, fake_clock):
        fake_source.fail_on_start_number = 2
        session, statuses, _ = _session(fake_source, fake_clock)
        session.start()
        fake_source.on_end()

        assert session.status is SessionStatus.IDLE
        assert statuses[-1] == "Restart failed: microphone busy"

    def test_policy_allows(self):
        assert RestartPolicy(None).allows(10_000)
        assert RestartPolicy(2).allows(1)
        assert not RestartPolicy(2).allows(2)
        assert not RestartPolicy(0).allows(0)


class TestSettings:

    def test_tone_change_rerenders_without_touching_state(self, fake_source, fake_clock, make_event):
        session, _, updates = _session(fake_source, fake_clock)
        session.start()
        session.handle_event(make_event(0, ("okay thanks for the update", True)))
        session.stop()
        state_before = session.state

        update = session.set_tone("professional")
        assert session.state is state_before
        assert update.tone is ToneMode.PROFESSIONAL
        assert update.cleaned_toned == "Certainly Thank you for the update."
        assert updates[-1] is update

    def test_tone_change_without_content(self, fake_source, fake_clock):
        session, _, _ = _session(fake_source, fake_clock)
        assert session.set_tone("chat") is None
        assert session.settings.tone is ToneMode.CHAT

    def test_initial_settings(self, fake_source, fake_clock):
        settings = SessionSettings(dictation_enabled=True, tone="friendly")
        session, _, _ = _session(fake_source, fake_clock, settings=settings)
        assert session.settings.tone is ToneMode.FRIENDLY


class TestSaveAndExport:

    def _stopped_session(self, fake_source, fake_clock, make_event):
        session, statuses, _ = _session(fake_source, fake_clock)
        session.start()
        session.handle_event(make_event(0, ("um hello hello world", True)))
        session.stop()
        return session, statuses

    def test_save_sends_original_and_cleaned(self, fake_source, fake_clock, make_event):
        session, statuses = self._stopped_session(fake_source, fake_clock, make_event)
        store = AsyncMock()
        store.save_transcript.return_value = SaveReceipt(id="7", created_at="2026-01-01")

        receipt = asyncio.run(session.save(store))

        store.save_transcript.assert_awaited_once_with("um hello hello world", "Hello world.")
        assert receipt.id == "7"
        assert statuses[-1] == "Saved"

    def test_failed_save_keeps_transcript(self, fake_source, fake_clock, make_event):
        session, statuses = self._stopped_session(fake_source, fake_clock, make_event)
        store = AsyncMock()
        store.save_transcript.side_effect = TranscriptStoreError(500, "Could not save")
        update_before = session.last_update

        with pytest.raises(PersistenceError):
            asyncio.run(session.save(store))
        assert statuses[-1] == "Could not save"
        assert session.last_update is update_before

        store.save_transcript.side_effect = None
        store.save_transcript.return_value = SaveReceipt(id="8")
        assert asyncio.run(session.save(store)).id == "8"

    def test_store_answering_html_reports_and_keeps_transcript(
        self, fake_source, fake_clock, make_event,
    ):
        session, statuses = self._stopped_session(fake_source, fake_clock, make_event)
        update_before = session.last_update
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>ok</html>"))

        async def run():
            async with TranscriptStoreClient(
                base_url="http://store.test", token="", transport=transport,
            ) as store:
                await session.save(store)

        with pytest.raises(PersistenceError):
            asyncio.run(run())
        assert statuses[-1] == "invalid response body"
        assert session.last_update is update_before

    def test_nothing_to_save(self, fake_source, fake_clock):
        session, _, _ = _session(fake_source, fake_clock)
        store = AsyncMock()
        with pytest.raises(PersistenceError):
            asyncio.run(session.save(store))
        store.save_transcript.assert_not_awaited()

    def test_export_text(self, fake_source, fake_clock, make_event):
        session, _ = self._stopped_session(fake_source, fake_clock, make_event)
        [output] = session.export("export_text")
        assert output.content.startswith("=== ORIGINAL TRANSCRIPT ===\num hello hello world")
        assert "=== CLEANED TRANSCRIPT (none) ===\nHello world." in output.content

    def test_export_unknown_format(self, fake_source, fake_clock):
        session, _, _ = _session(fake_source, fake_clock)
        with pytest.raises(KeyError):
            session.export("docx")
