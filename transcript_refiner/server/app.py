"""FastAPI application for live dictation sessions.

WHY: The recognizer runs in the user's browser, but cleaning, tone,
repeat analysis, export and saving should behave the same everywhere.
The browser posts each recognition result batch here and renders the
update it gets back.

HOW: A single FastAPI app with a SessionStore singleton. Session
endpoints map one to one onto TranscriptSession operations:
  POST   /sessions                      create + start listening
  GET    /sessions/{id}                 status + latest update
  POST   /sessions/{id}/events          apply one recognition event
  POST   /sessions/{id}/stream-end      provider stream closed
  POST   /sessions/{id}/start           new dictation in an idle session
  POST   /sessions/{id}/stop            stop listening
  PUT    /sessions/{id}/settings        tone / dictation (tone re-renders)
  GET    /sessions/{id}/export/{format} download an export
  POST   /sessions/{id}/save            send to the transcript store
  DELETE /sessions/{id}
plus GET /history (proxied from the transcript store) and stateless
POST /clean, GET /formats and GET /health.

RULES:
- Events for a session that is not listening are rejected with 409 and
  never reach the transcript
- A failed save returns 502 and keeps the transcript for a retry
- Error responses use the ErrorResponse schema
- Expired sessions are removed by a periodic task in the lifespan
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import Response

from transcript_refiner import __version__
from transcript_refiner.core.dictation import apply_dictation
from transcript_refiner.core.ir import (
    RecognitionEvent,
    ResultItem,
    SessionSettings,
    ToneMode,
    TranscriptExport,
    TranscriptState,
)
from transcript_refiner.core.reconciler import render
from transcript_refiner.core.session import SessionStatus
from transcript_refiner.errors import PersistenceError
from transcript_refiner.formatters import FORMATTERS
from transcript_refiner.server.models import (
    CleanRequest,
    ErrorResponse,
    FormatInfo,
    HealthResponse,
    HistoryResponse,
    RecognitionEventRequest,
    SaveResponse,
    SessionResponse,
    SessionSettingsRequest,
    SettingsUpdateRequest,
    UpdateResponse,
)
from transcript_refiner.server.sessions import ManagedSession, SessionStore
from transcript_refiner.store.client import TranscriptStore, TranscriptStoreClient

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

session_store = SessionStore()


async def _periodic_cleanup() -> None:
    """Run session cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        session_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Transcript Refiner API",
    description=(
        "Streaming speech transcript reconciliation and cleanup. Create a "
        "session, post recognition events from your recognizer, and receive "
        "raw, processed, cleaned and tone-adjusted transcripts with repeat "
        "suggestions."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


async def get_transcript_store() -> AsyncIterator[TranscriptStore]:
    """Dependency yielding a connected transcript store client."""
    async with TranscriptStoreClient() as store:
        yield store


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_or_404(session_id: str) -> ManagedSession:
    managed = session_store.touch(session_id)
    if managed is None:
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return managed


def _session_to_response(managed: ManagedSession) -> SessionResponse:
    session = managed.session
    return SessionResponse(
        id=managed.id,
        status=session.status.value,
        status_message=session.status_message,
        tone=session.settings.tone,
        dictation=session.settings.dictation_enabled,
        restarts=session.restarts,
        created_at=managed.created_at,
        update=UpdateResponse.from_update(session.last_update),
    )


def _event_from_request(body: RecognitionEventRequest) -> RecognitionEvent:
    return RecognitionEvent(
        result_index=body.result_index,
        results=tuple(ResultItem(text=r.text, is_final=r.is_final) for r in body.results),
    )


# ---------------------------------------------------------------------------
# Endpoints: Sessions
# ---------------------------------------------------------------------------


@app.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["sessions"],
    summary="Create a dictation session",
    description="Creates a session with the given settings and starts listening.",
    responses={429: {"model": ErrorResponse, "description": "Too many sessions"}},
)
async def create_session(body: Optional[SessionSettingsRequest] = None) -> SessionResponse:
    body = body or SessionSettingsRequest()
    settings = SessionSettings(dictation_enabled=body.dictation, tone=body.tone)
    try:
        managed = session_store.create_session(settings)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    return _session_to_response(managed)


@app.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Get session status and latest transcript",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def get_session(session_id: str) -> SessionResponse:
    return _session_to_response(_get_or_404(session_id))


@app.post(
    "/sessions/{session_id}/events",
    response_model=UpdateResponse,
    tags=["sessions"],
    summary="Apply a recognition event",
    description=(
        "Folds one batch of recognizer results into the session transcript "
        "and returns the new update."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Session is not listening"},
    },
)
async def post_event(session_id: str, body: RecognitionEventRequest) -> UpdateResponse:
    managed = _get_or_404(session_id)
    if managed.session.status is not SessionStatus.LISTENING:
        logger.debug("Rejected event for %s session %s", managed.session.status.value, session_id)
        raise HTTPException(
            status_code=409,
            detail="Session is not listening (current status: {}).".format(
                managed.session.status.value
            ),
        )
    managed.source.push(_event_from_request(body))
    return UpdateResponse.from_update(managed.session.last_update)


@app.post(
    "/sessions/{session_id}/stream-end",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Report that the recognizer stream ended",
    description=(
        "While listening, the session restarts the stream silently. After "
        "a stop, this confirms the stop."
    ),
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def post_stream_end(session_id: str) -> SessionResponse:
    managed = _get_or_404(session_id)
    managed.source.end_stream()
    return _session_to_response(managed)


@app.post(
    "/sessions/{session_id}/start",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Start a new dictation in an existing session",
    description=(
        "Clears the transcript and listens again. Only an idle session can "
        "be started."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Session is not idle"},
    },
)
async def start_session(session_id: str) -> SessionResponse:
    managed = _get_or_404(session_id)
    if managed.session.status is not SessionStatus.IDLE:
        raise HTTPException(
            status_code=409,
            detail="Session is not idle (current status: {}).".format(
                managed.session.status.value
            ),
        )
    managed.session.start()
    return _session_to_response(managed)


@app.post(
    "/sessions/{session_id}/stop",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Stop listening",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def stop_session(session_id: str) -> SessionResponse:
    managed = _get_or_404(session_id)
    managed.session.stop()
    return _session_to_response(managed)


@app.put(
    "/sessions/{session_id}/settings",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Change tone or dictation",
    description="A tone change re-renders the current transcript immediately.",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def update_settings(session_id: str, body: SettingsUpdateRequest) -> SessionResponse:
    managed = _get_or_404(session_id)
    if body.dictation is not None:
        managed.session.set_dictation(body.dictation)
    if body.tone is not None:
        managed.session.set_tone(body.tone)
    return _session_to_response(managed)


@app.get(
    "/sessions/{session_id}/export/{format_key}",
    tags=["sessions"],
    summary="Download the transcript in an export format",
    responses={404: {"model": ErrorResponse, "description": "Session or format not found"}},
)
async def export_session(session_id: str, format_key: str) -> Response:
    managed = _get_or_404(session_id)
    if format_key not in FORMATTERS:
        raise HTTPException(
            status_code=404,
            detail="Unknown format '{}'. Available: {}".format(
                format_key, ", ".join(sorted(FORMATTERS))
            ),
        )
    output = managed.session.export(format_key)[0]
    filename = "session-{}{}".format(managed.id[:8], output.suffix)
    return Response(
        content=output.content,
        media_type=output.media_type,
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(filename)},
    )


@app.post(
    "/sessions/{session_id}/save",
    response_model=SaveResponse,
    tags=["sessions"],
    summary="Save the transcript to the transcript store",
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        502: {"model": ErrorResponse, "description": "Transcript store failed"},
    },
)
async def save_session(
    session_id: str,
    store: TranscriptStore = Depends(get_transcript_store),
) -> SaveResponse:
    managed = _get_or_404(session_id)
    try:
        receipt = await managed.session.save(store)
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return SaveResponse(id=receipt.id, created_at=receipt.created_at)


@app.delete(
    "/sessions/{session_id}",
    status_code=204,
    tags=["sessions"],
    summary="Delete a session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def delete_session(session_id: str) -> Response:
    if not session_store.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: History
# ---------------------------------------------------------------------------


@app.get(
    "/history",
    response_model=HistoryResponse,
    tags=["history"],
    summary="List saved transcripts",
    description="Proxies the transcript store's history, newest first.",
    responses={502: {"model": ErrorResponse, "description": "Transcript store failed"}},
)
async def list_history(
    store: TranscriptStore = Depends(get_transcript_store),
) -> HistoryResponse:
    try:
        rows = await store.list_history()
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return HistoryResponse(rows=rows)


# ---------------------------------------------------------------------------
# Endpoints: Stateless cleaning
# ---------------------------------------------------------------------------


@app.post(
    "/clean",
    response_model=UpdateResponse,
    tags=["clean"],
    summary="Clean a complete transcript",
    description="Runs dictation, cleaning, tone and repeat analysis on one text.",
)
async def clean(body: CleanRequest) -> UpdateResponse:
    state = TranscriptState(
        original_final=body.text,
        processed_final=apply_dictation(body.text, body.dictation),
    )
    return UpdateResponse.from_update(render(state, body.tone))


# ---------------------------------------------------------------------------
# Endpoints: Formats and health
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["formats"],
    summary="List available export formats",
)
async def list_formats() -> List[FormatInfo]:
    empty = TranscriptExport(
        original="", processed="", cleaned_toned="", tone=ToneMode.NONE, suggestions_text="",
    )
    result = []
    for key, formatter_cls in sorted(FORMATTERS.items()):
        formatter = formatter_cls()
        outputs = formatter.format(empty)
        result.append(FormatInfo(
            key=key,
            name=formatter.name,
            suffix=outputs[0].suffix if outputs else "",
        ))
    return result


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: str = "0.0.0.0", port: int = 8000):
    """Entry point for the transcript-refiner-api console script."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=host, port=port)
