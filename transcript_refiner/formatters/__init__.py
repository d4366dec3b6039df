"""Export formatter registry.

WHY: The session, CLI, and API layers need a single lookup to find the
right exporter by name.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["export_text"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags and API paths)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from transcript_refiner.formatters.export_json import JSONExportFormatter
from transcript_refiner.formatters.export_text import LabeledTextFormatter

if TYPE_CHECKING:
    from transcript_refiner.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "export_text": LabeledTextFormatter,
    "export_json": JSONExportFormatter,
}
