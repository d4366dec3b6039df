"""Async HTTP client for the transcript store.

WHY: Saving is the one persistence action a user takes: the raw transcript
and its cleaned, toned version are handed to a storage service that keeps
a per-user history. The session only needs success or failure, so the
HTTP details live here.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. TranscriptStoreClient
is an async context manager; enter it to open a connection pool, exit to
close it. Endpoints:
  POST /save-transcript  {"original_transcript", "cleaned_transcript"}
                         → {"ok": true, "id": ..., "created_at": ...}
  GET  /history          → {"ok": true, "rows": [...]}

RULES:
- Always use the async context manager (async with TranscriptStoreClient() as store:)
- base_url defaults to load_store_url() from config
- A bearer token is sent only when configured
- Non-2xx responses raise TranscriptStoreError with the server's "error"
  message when it sent one
- Network failures raise TranscriptStoreError with status_code None
- A 2xx response whose body is not a JSON object raises
  TranscriptStoreError("invalid response body")
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol

import httpx

from transcript_refiner.config import TRANSCRIPT_STORE_TOKEN, load_store_url
from transcript_refiner.core.ir import SaveReceipt
from transcript_refiner.errors import PersistenceError

logger = logging.getLogger(__name__)


class TranscriptStoreError(PersistenceError):
    """Raised when the transcript store rejects or fails a request.

    RULES:
    - status_code is None for network failures
    - message is the server's "error" field, the body text, or a summary
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(f"Transcript store unreachable: {message}")
        else:
            super().__init__(f"Transcript store error {status_code}: {message}")


class TranscriptStore(Protocol):
    async def save_transcript(self, original: str, cleaned: str) -> SaveReceipt:
        ...

    async def list_history(self) -> List[Dict[str, Any]]:
        ...


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return resp.text


def _json_object(resp: httpx.Response) -> Dict[str, Any]:
    """Decode a 2xx body, which must be a JSON object."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise TranscriptStoreError(resp.status_code, "invalid response body") from exc
    if not isinstance(data, dict):
        raise TranscriptStoreError(resp.status_code, "invalid response body")
    return data


class TranscriptStoreClient:
    """Async client for the transcript history service.

    Args:
        base_url: Store root URL; defaults to TRANSCRIPT_STORE_URL.
        token: Optional bearer token; defaults to TRANSCRIPT_STORE_TOKEN.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or load_store_url()).rstrip("/")
        self._token = token if token is not None else TRANSCRIPT_STORE_TOKEN
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> TranscriptStoreClient:
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(30.0, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "TranscriptStoreClient must be used as an async context manager: "
                "async with TranscriptStoreClient() as store: ..."
            )
        return self._client

    async def save_transcript(self, original: str, cleaned: str) -> SaveReceipt:
        """Store one (original, cleaned) transcript pair.

        Returns:
            SaveReceipt with the id and creation time the store assigned.

        Raises:
            TranscriptStoreError: On a non-2xx response or network failure.
        """
        client = self._ensure_client()
        body = {"original_transcript": original, "cleaned_transcript": cleaned}
        try:
            resp = await client.post("/save-transcript", json=body)
        except httpx.HTTPError as exc:
            raise TranscriptStoreError(None, str(exc) or type(exc).__name__) from exc

        if resp.status_code not in (200, 201):
            raise TranscriptStoreError(resp.status_code, _error_message(resp))

        data = _json_object(resp)
        receipt = SaveReceipt(
            id=str(data["id"]) if data.get("id") is not None else None,
            created_at=data.get("created_at"),
        )
        logger.info("Saved transcript %s", receipt.id)
        return receipt

    async def list_history(self) -> List[Dict[str, Any]]:
        """Return the caller's saved transcripts, newest first."""
        client = self._ensure_client()
        try:
            resp = await client.get("/history")
        except httpx.HTTPError as exc:
            raise TranscriptStoreError(None, str(exc) or type(exc).__name__) from exc

        if resp.status_code != 200:
            raise TranscriptStoreError(resp.status_code, _error_message(resp))
        rows = _json_object(resp).get("rows", [])
        if not isinstance(rows, list):
            raise TranscriptStoreError(resp.status_code, "invalid response body")
        return list(rows)
