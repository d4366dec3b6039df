"""Spoken dictation command substitution.

WHY: While dictating, users say "comma" or "new paragraph" instead of
typing symbols. Substituting these before reconciliation means the
processed transcript (and everything cleaned from it) already carries
the intended punctuation and layout.

HOW: A fixed, ordered table maps spoken phrases to symbols. Each phrase
compiles to a case-insensitive, word-boundary anchored regex; rules are
independent and applied over the whole string in table order.

RULES:
- Disabled → input returned unchanged
- Whitespace before a spoken punctuation mark is absorbed ("hello comma
  world" → "hello, world")
- Spaces around line and paragraph breaks are absorbed
- Multi-word phrases match any run of whitespace between their words
- No error conditions; absent phrases leave the text untouched
"""

from __future__ import annotations

import re
from typing import List, Tuple

from transcript_refiner.core.ir import SubstitutionRule

# Spoken phrase → symbol, in application order.
DICTATION_COMMANDS: List[Tuple[str, str]] = [
    ("comma", ","),
    ("period", "."),
    ("question mark", "?"),
    ("exclamation mark", "!"),
    ("new line", "\n"),
    ("new paragraph", "\n\n"),
]


def _phrase_pattern(phrase: str) -> str:
    return r"\s+".join(re.escape(word) for word in phrase.split())


def _compile_rule(phrase: str, symbol: str) -> SubstitutionRule:
    body = r"\b{}\b".format(_phrase_pattern(phrase))
    if "\n" in symbol:
        pattern = r"[ \t]*{}[ \t]*".format(body)
    else:
        pattern = r"[ \t]*{}".format(body)
    return SubstitutionRule(pattern=re.compile(pattern, re.IGNORECASE), replacement=symbol)


DICTATION_RULES: List[SubstitutionRule] = [
    _compile_rule(phrase, symbol) for phrase, symbol in DICTATION_COMMANDS
]


def apply_dictation(text: str, enabled: bool) -> str:
    """Replace spoken punctuation commands with their symbols.

    Args:
        text: Recognized text (interim or final).
        enabled: The dictation toggle; when False the text is returned as is.

    Returns:
        The text with every command phrase replaced.
    """
    if not enabled or not text:
        return text
    out = text
    for rule in DICTATION_RULES:
        out = rule.pattern.sub(rule.replacement, out)
    return out
