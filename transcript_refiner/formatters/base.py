"""Abstract base formatter and output container.

WHY: A finished transcript is downloaded as a text file, fetched as JSON
by the HTTP API, or written next to a recording by the CLI. Every export
consumes the same TranscriptExport snapshot; this base class gives the
session, CLI, and API one generic interface.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method. FormatterOutput bundles a file suffix with its content and MIME
type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``format()`` returns a list, usually of one item
- ``suffix`` starts with a hyphen, e.g. ``"-transcript.txt"``
- The caller is responsible for prepending the source filename stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from transcript_refiner.core.ir import TranscriptExport


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-transcript.txt"`` → ``"meeting-transcript.txt"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"text/plain"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all export formatters.

    To add a new export format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Labeled Text'."""

    @abstractmethod
    def format(self, export: TranscriptExport) -> list[FormatterOutput]:
        """Convert an export snapshot into one or more output files.

        Args:
            export: Original, processed and cleaned text plus the tone
                    label and repeat suggestions.

        Returns:
            List of FormatterOutput objects.
        """
