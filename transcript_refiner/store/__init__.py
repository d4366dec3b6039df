"""Transcript persistence collaborators."""

from __future__ import annotations

from transcript_refiner.store.client import (
    TranscriptStore,
    TranscriptStoreClient,
    TranscriptStoreError,
)

__all__ = ["TranscriptStore", "TranscriptStoreClient", "TranscriptStoreError"]
