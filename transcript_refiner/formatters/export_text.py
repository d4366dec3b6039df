"""Labeled-section plain text export.

WHY: The download users get from the dictation page is one text file that
holds every view of the transcript, so nothing is lost when the raw and
cleaned versions disagree.

HOW: Four sections in a fixed order, each a "=== TITLE ===" header line
followed by its text, separated by one blank line:
  ORIGINAL TRANSCRIPT / PROCESSED TRANSCRIPT /
  CLEANED TRANSCRIPT (<tone>) / SUGGESTIONS

RULES:
- Section text is trimmed; an empty section still prints its header
- The cleaned section header carries the tone label, e.g. "(professional)"
- No trailing newline after the last section
- Output suffix: "-transcript.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import List

from transcript_refiner.core.ir import TranscriptExport
from transcript_refiner.formatters.base import BaseFormatter, FormatterOutput


def _section(title: str, body: str) -> str:
    return "=== {} ===\n{}".format(title, (body or "").strip())


class LabeledTextFormatter(BaseFormatter):
    """Formatter that produces the four-section text download."""

    @property
    def name(self) -> str:
        return "Labeled Text"

    def format(self, export: TranscriptExport) -> List[FormatterOutput]:
        sections = [
            _section("ORIGINAL TRANSCRIPT", export.original),
            _section("PROCESSED TRANSCRIPT", export.processed),
            _section("CLEANED TRANSCRIPT ({})".format(export.tone.value), export.cleaned_toned),
            _section("SUGGESTIONS", export.suggestions_text),
        ]
        return [
            FormatterOutput(
                suffix="-transcript.txt",
                content="\n\n".join(sections),
                media_type="text/plain",
            )
        ]
