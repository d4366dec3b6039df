"""Configuration constants, tunables, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Cleaning thresholds, session defaults, and the
transcript store location are plain values, not buried in logic, so
they can be changed without touching the pipeline.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values read from the environment with defaults that
suit live dictation. load_store_url() provides a clear error when the
URL is blank.

RULES:
- Every constant can be overridden via an environment variable
- MAX_SILENT_RESTARTS is None when unset (unlimited restarts)
- Boolean variables accept "true"/"false" (case-insensitive)
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back on bad values."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Cleaning pipeline tunables
# ---------------------------------------------------------------------------

MAX_GRAM = _env_int("TRANSCRIPT_MAX_GRAM", 4)
"""Largest repeated phrase length (in words) collapsed by the cleaner."""

SHORT_SENTENCE_MAX_WORDS = _env_int("TRANSCRIPT_SHORT_SENTENCE_MAX_WORDS", 3)
"""Sentences with at most this many words are merged into the previous one."""

PARAGRAPH_CHAR_LIMIT = _env_int("TRANSCRIPT_PARAGRAPH_CHAR_LIMIT", 120)
"""Characters accumulated since the last break before a new paragraph starts."""

# ---------------------------------------------------------------------------
# Session defaults
# ---------------------------------------------------------------------------

DEFAULT_TONE = os.getenv("TRANSCRIPT_DEFAULT_TONE", "none").strip().lower() or "none"
DEFAULT_DICTATION = os.getenv("TRANSCRIPT_DEFAULT_DICTATION", "false").lower() == "true"

MAX_SILENT_RESTARTS = _env_optional_int("TRANSCRIPT_MAX_SILENT_RESTARTS")
"""Bound on silent stream restarts per session; None keeps restarting forever."""

SESSION_TTL_SECONDS = _env_int("TRANSCRIPT_SESSION_TTL_SECONDS", 3600)
MAX_SESSIONS = _env_int("TRANSCRIPT_MAX_SESSIONS", 100)

# ---------------------------------------------------------------------------
# Transcript store (persistence collaborator)
# ---------------------------------------------------------------------------

TRANSCRIPT_STORE_URL = os.getenv("TRANSCRIPT_STORE_URL", "http://localhost:3000")
TRANSCRIPT_STORE_TOKEN = os.getenv("TRANSCRIPT_STORE_TOKEN", "").strip() or None


def load_store_url() -> str:
    """Return the transcript store base URL.

    WHY: Saving a transcript needs somewhere to send it. A blank URL is
    almost always a broken .env file, so fail loudly instead of posting
    to a relative path.

    RULES:
    - Raises ValueError if the URL is missing or blank
    - Trailing slashes are stripped
    """
    url = (TRANSCRIPT_STORE_URL or "").strip()
    if not url:
        raise ValueError(
            "Transcript store URL not configured. "
            "Set TRANSCRIPT_STORE_URL in the .env file."
        )
    return url.rstrip("/")
