"""Repeated-word analysis over the raw transcript.

WHY: The cleaner silently removes stutters, but users also want to see
where they repeated themselves: as a list of suggestions, as highlighted
text, and as a compact status line. Analysis runs on the raw text so the
cleaner's edits do not hide what was actually said.

HOW: One detector, _adjacent_pairs(), finds every pair of neighbouring
words that are equal case-insensitively and separated only by
whitespace. The public functions present those pairs three ways:
  find_adjacent_duplicate_words — one lowercased word per pair, in order
  highlight_repeats             — markup with each run wrapped in <mark>
  detect_repeated_word_set      — the distinct words, for summaries

RULES:
- A repeat is adjacent, case-insensitive, and whole-word; all three
  presentations agree on that definition
- "the, the" is not a repeat (punctuation between the words)
- highlight_repeats keeps both occurrences and their spelling; text is
  HTML-escaped so the markup is safe to render
- The "no repeats" sentinel belongs to suggestions_text(), which the
  host displays literally
"""

from __future__ import annotations

import html
import re
from typing import List, Set, Tuple

from transcript_refiner.core.ir import Suggestion

NO_REPEATS_MESSAGE = "No repeated words found."
REPEAT_SUMMARY_PREFIX = "Repeated detected: "
HIGHLIGHT_OPEN = '<mark class="repeat">'
HIGHLIGHT_CLOSE = "</mark>"

_WORD_RE = re.compile(r"\w+(?:'\w+)*")


def _adjacent_pairs(text: str) -> List[Tuple[re.Match, re.Match]]:
    pairs: List[Tuple[re.Match, re.Match]] = []
    previous = None
    for match in _WORD_RE.finditer(text or ""):
        if previous is not None and match.group(0).lower() == previous.group(0).lower():
            gap = text[previous.end():match.start()]
            if gap.isspace():
                pairs.append((previous, match))
        previous = match
    return pairs


def find_adjacent_duplicate_words(text: str) -> List[str]:
    """Return one lowercased word for every adjacent duplicate pair.

    "so so so" yields ["so", "so"]: three words, two adjacent pairs.
    """
    return [first.group(0).lower() for first, _second in _adjacent_pairs(text)]


def detect_repeated_word_set(text: str) -> Set[str]:
    """Return the distinct words that appear as adjacent duplicates."""
    return set(find_adjacent_duplicate_words(text))


def find_suggestions(text: str) -> List[Suggestion]:
    return [Suggestion(word=word) for word in find_adjacent_duplicate_words(text)]


def suggestions_text(text: str) -> str:
    """Human-readable suggestion list, or the "no repeats" sentinel."""
    suggestions = find_suggestions(text)
    if not suggestions:
        return NO_REPEATS_MESSAGE
    return "\n".join(s.describe() for s in suggestions)


def repeat_summary(text: str) -> str:
    """Compact status line listing repeated words in first-seen order."""
    words = list(dict.fromkeys(find_adjacent_duplicate_words(text)))
    if not words:
        return ""
    return REPEAT_SUMMARY_PREFIX + ", ".join(words)


def highlight_repeats(text: str) -> str:
    """Wrap every run of adjacent duplicate words in a highlight span.

    HOW: Consecutive pairs that share a word ("a a a") merge into one
    run, so spans never nest or overlap. Text inside and outside the
    spans is HTML-escaped; nothing else changes.
    """
    if not text:
        return ""
    spans: List[List[int]] = []
    for first, second in _adjacent_pairs(text):
        if spans and spans[-1][1] == first.end():
            spans[-1][1] = second.end()
        else:
            spans.append([first.start(), second.end()])

    parts: List[str] = []
    cursor = 0
    for start, end in spans:
        parts.append(html.escape(text[cursor:start], quote=False))
        parts.append(HIGHLIGHT_OPEN + html.escape(text[start:end], quote=False) + HIGHLIGHT_CLOSE)
        cursor = end
    parts.append(html.escape(text[cursor:], quote=False))
    return "".join(parts)
