"""Tone rewriting by lexical substitution.

WHY: The same cleaned transcript is pasted into very different places:
an email to a client, a message to a friend, a chat window. A handful of
word swaps gets most of the way to the right register without any
language model.

HOW: Each ToneMode owns an ordered list of case-insensitive whole-phrase
rules. apply_tone() joins a mode's rules into one alternation and runs a
single substitution pass, so no rule ever sees another rule's output.
The capitalization rule is then re-applied because a substitution may
have changed a sentence-initial word.

RULES:
- ToneMode.NONE and unknown modes return the text unchanged
- Rule order is fixed per mode; at the same position the earlier rule wins
- Substitutions are whole-phrase (word-boundary anchored)
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from transcript_refiner.core.cleaner import fix_capitalization
from transcript_refiner.core.ir import ToneMode

TONE_RULES: Dict[ToneMode, List[Tuple[str, str]]] = {
    ToneMode.PROFESSIONAL: [
        ("okay", "Certainly"),
        ("ok", "Understood"),
        ("i think", "I believe"),
        ("maybe", "perhaps"),
        ("can't", "cannot"),
        ("won't", "will not"),
        ("thanks", "Thank you"),
    ],
    ToneMode.FRIENDLY: [
        ("okay", "Sure"),
        ("hello", "Hey"),
        ("thanks", "Thanks!"),
    ],
    ToneMode.CHAT: [
        ("thank you", "Thanks"),
        ("please", "pls"),
    ],
}


def _compile_mode(rules: List[Tuple[str, str]]) -> Tuple[re.Pattern, List[str]]:
    """Build one alternation with a named group per rule."""
    parts = []
    for index, (phrase, _replacement) in enumerate(rules):
        body = r"\s+".join(re.escape(word) for word in phrase.split())
        parts.append(r"(?P<r{}>\b{}\b)".format(index, body))
    pattern = re.compile("|".join(parts), re.IGNORECASE)
    return pattern, [replacement for _phrase, replacement in rules]


_COMPILED: Dict[ToneMode, Tuple[re.Pattern, List[str]]] = {
    mode: _compile_mode(rules) for mode, rules in TONE_RULES.items()
}


def apply_tone(text: str, mode: ToneMode | str | None) -> str:
    """Rewrite cleaned text in the requested tone.

    Args:
        text: Cleaned transcript text.
        mode: A ToneMode or its string value; anything unknown means none.

    Returns:
        The rewritten text, or the input unchanged for ToneMode.NONE.
    """
    tone = ToneMode.parse(mode)
    if tone is ToneMode.NONE or not text:
        return text
    pattern, replacements = _COMPILED[tone]

    def _replace(match: re.Match) -> str:
        # lastgroup is the named group of the rule that matched
        return replacements[int(match.lastgroup[1:])]

    return fix_capitalization(pattern.sub(_replace, text))
