"""Transcript Refiner: streaming speech transcript reconciliation and cleanup.

WHY: Speech recognizers emit a live, constantly revised stream of interim
and final segments. Users want a readable transcript out of that stream:
the raw text, a cleaned version without fillers and stutters, a
tone-adjusted rewrite, and hints about repeated words.

HOW: Four-stage pipeline: ingest (recognition sources), reconcile (a pure
reducer over recognition events), clean (deterministic text transforms and
tone rules), present (updates, exports, storage hand-off). Each stage is
independently testable.

RULES:
- All text transforms are pure string functions, total over ""
- Reconciliation state is owned by one TranscriptSession, never global
- Adding a new export format = one new formatter module, no core changes
- Storage and recognition providers are collaborators behind protocols
"""

__version__ = "0.1.0"
