"""JSON transcript export.

WHY: Tools that archive or post-process dictation sessions want the same
content as the text download, but with fields instead of headers.

HOW: Builds a dict from the TranscriptExport snapshot and validates it
against EXPORT_SCHEMA with jsonschema before serializing.

RULES:
- Keys: version, tone, original, processed, cleaned, suggestions,
  repeated_words
- suggestions is the list of suggestion lines; empty when no repeats
- Output suffix: "-transcript.json"
- Media type: "application/json"
- Raises jsonschema.ValidationError if the payload is malformed
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

import jsonschema

from transcript_refiner.core.ir import TranscriptExport
from transcript_refiner.formatters.base import BaseFormatter, FormatterOutput

EXPORT_VERSION = "1.0"

EXPORT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["version", "tone", "original", "processed", "cleaned", "suggestions", "repeated_words"],
    "additionalProperties": False,
    "properties": {
        "version": {"type": "string"},
        "tone": {"enum": ["none", "professional", "friendly", "chat"]},
        "original": {"type": "string"},
        "processed": {"type": "string"},
        "cleaned": {"type": "string"},
        "suggestions": {"type": "array", "items": {"type": "string"}},
        "repeated_words": {"type": "array", "items": {"type": "string"}},
    },
}


class JSONExportFormatter(BaseFormatter):
    """Formatter that produces the schema-validated JSON export."""

    @property
    def name(self) -> str:
        return "JSON"

    def format(self, export: TranscriptExport) -> List[FormatterOutput]:
        """Convert the export snapshot into a JSON document.

        Raises:
            jsonschema.ValidationError: If the generated payload does not
                match EXPORT_SCHEMA.
        """
        suggestions = [line for line in export.suggestions_text.splitlines() if line.strip()]
        if not export.repeated_words:
            # The text form carries a "no repeats" sentence instead of an empty list
            suggestions = []

        output = {
            "version": EXPORT_VERSION,
            "tone": export.tone.value,
            "original": export.original,
            "processed": export.processed,
            "cleaned": export.cleaned_toned,
            "suggestions": suggestions,
            "repeated_words": list(export.repeated_words),
        }
        jsonschema.validate(instance=output, schema=EXPORT_SCHEMA)

        return [
            FormatterOutput(
                suffix="-transcript.json",
                content=json.dumps(output, indent=2, ensure_ascii=False),
                media_type="application/json",
            )
        ]
