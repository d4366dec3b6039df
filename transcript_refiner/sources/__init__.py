"""Recognition sources that feed events into a TranscriptSession."""

from __future__ import annotations

from transcript_refiner.sources.base import RecognitionSource
from transcript_refiner.sources.push import PushSource
from transcript_refiner.sources.replay import ReplaySource

__all__ = ["PushSource", "RecognitionSource", "ReplaySource"]
