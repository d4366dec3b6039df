"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and the generated OpenAPI documentation.

HOW: Each endpoint pair (request + response) has its own model. Tone
values use the ToneMode enum from the IR, so an unknown tone is rejected
with 422 instead of silently meaning "none".

RULES:
- All models use Field(description=...) for OpenAPI documentation
- ToneMode is imported from core.ir (single source of truth)
- Response models never expose internal state such as result_floor
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from transcript_refiner.config import DEFAULT_DICTATION, DEFAULT_TONE
from transcript_refiner.core.ir import ToneMode, TranscriptUpdate

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SessionSettingsRequest(BaseModel):
    """Settings sent when a session is created."""

    tone: ToneMode = Field(
        default=ToneMode.parse(DEFAULT_TONE),
        description="Tone applied to the cleaned transcript.",
    )
    dictation: bool = Field(
        default=DEFAULT_DICTATION,
        description="Replace spoken commands such as 'comma' with symbols.",
    )


class SettingsUpdateRequest(BaseModel):
    """Partial settings update; omitted fields keep their value."""

    tone: Optional[ToneMode] = Field(default=None, description="New tone.")
    dictation: Optional[bool] = Field(default=None, description="New dictation toggle.")


class ResultItemModel(BaseModel):
    text: str = Field(description="Recognized text of the segment.")
    is_final: bool = Field(default=False, description="True once the recognizer will not revise it.")


class RecognitionEventRequest(BaseModel):
    """One batch of results from the browser's recognizer.

    RULES:
    - results is the recognizer's full result list for the current stream
    - results before result_index are ignored
    """

    result_index: int = Field(default=0, ge=0, description="Index of the first changed result.")
    results: List[ResultItemModel] = Field(default_factory=list, description="Result list.")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "result_index": 0,
                "results": [
                    {"text": "hello world", "is_final": True},
                    {"text": "and then", "is_final": False},
                ],
            }
        ]
    }}


class CleanRequest(BaseModel):
    """Stateless cleaning of a complete transcript."""

    text: str = Field(description="Raw transcript text.")
    tone: ToneMode = Field(default=ToneMode.NONE, description="Tone to apply.")
    dictation: bool = Field(default=False, description="Apply dictation commands first.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UpdateResponse(BaseModel):
    """Everything a client renders after an event."""

    original_text: str = Field(description="Raw final + interim text.")
    display_processed: str = Field(description="Dictation-processed text.")
    processed_markup: str = Field(description="Processed text with repeat highlight spans (HTML).")
    cleaned_toned: str = Field(description="Cleaned transcript in the selected tone.")
    suggestions_text: str = Field(description="Repeat suggestions, one per line.")
    repeat_summary: str = Field(description="Compact repeated-words status line.")
    latency_ms: int = Field(description="Time since the recognition stream (re)started.")
    tone: ToneMode = Field(description="Tone used for cleaned_toned.")

    @classmethod
    def from_update(cls, update: TranscriptUpdate) -> UpdateResponse:
        return cls(**update.to_dict())


class SessionResponse(BaseModel):
    """Session status and its latest transcript update."""

    id: str = Field(description="Unique session identifier.")
    status: str = Field(description="idle, listening or stopping.")
    status_message: str = Field(description="Last human-readable status message.")
    tone: ToneMode = Field(description="Current tone.")
    dictation: bool = Field(description="Current dictation toggle.")
    restarts: int = Field(description="Silent stream restarts since the session started.")
    created_at: float = Field(description="Creation timestamp (Unix epoch seconds).")
    update: UpdateResponse = Field(description="Latest transcript update.")


class SaveResponse(BaseModel):
    id: Optional[str] = Field(default=None, description="Identifier assigned by the store.")
    created_at: Optional[str] = Field(default=None, description="Store timestamp.")


class FormatInfo(BaseModel):
    key: str = Field(description="Format identifier used in export paths.")
    name: str = Field(description="Human-readable format name.")
    suffix: str = Field(description="File suffix produced (e.g. '-transcript.txt').")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HistoryResponse(BaseModel):
    """Saved transcripts as returned by the transcript store."""

    rows: List[Dict[str, Any]] = Field(
        default_factory=list, description="Saved transcripts, newest first.",
    )


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
