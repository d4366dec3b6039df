"""Exception types raised at the package boundaries.

WHY: Text processing is pure and never fails, so every error in this
package originates at a boundary: the recognition source, the storage
collaborator, or an input recording. Typed exceptions let callers tell
these apart and pick the right status message.

RULES:
- Text transform functions never raise any of these
- A transient provider stream end is not an exception; sessions restart
  silently and only a failing restart is reported
- PersistenceError leaves the transcript untouched so the user can retry
"""

from __future__ import annotations


class UnsupportedCapabilityError(RuntimeError):
    """Raised when the recognition source is not available.

    Surfaced once when a session tries to start; sessions never retry it.
    """


class RestartFailedError(RuntimeError):
    """Raised internally when restarting a recognition stream fails."""


class PersistenceError(Exception):
    """Raised when a save or export collaborator reports failure."""


class EventFormatError(ValueError):
    """Raised when a recognition event record does not match the schema.

    Carries the 1-based line number when the record came from a file.
    """

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = "line {}: {}".format(line, message)
        super().__init__(message)
