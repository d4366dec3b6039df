"""Deterministic, rule-based transcript cleaning (no ML).

WHY: Raw speech recognition output is full of hesitations ("um", "you
know"), stutters ("the the"), restarted phrases, and missing punctuation.
Readers want a tidy paragraph version without losing the speaker's words.
Every rule here is a plain string transform, so the result is
reproducible and cheap enough to recompute after every recognition event.

HOW: clean_text() runs twelve pure string → string stages in a fixed
order. Later stages assume the normalized output of earlier ones:
   1. lowercase                     7. fix_pronoun_i
   2. remove_fillers                8. remove_small_repeats
   3. collapse_duplicate_words      9. remove_double_punctuation
   4. remove_repeated_phrases      10. fix_punctuation_spacing
   5. auto_punctuate               11. merge_short_sentences
   6. fix_capitalization           12. auto_paragraph

RULES:
- Every function is total over str: "" → "", never raises
- Filler removal is whole-word, case-insensitive, and idempotent
- Repeated phrases collapse greedily, largest n-gram first, re-scanning
  from the same position after each deletion
- Terminal punctuation is ".", "!" or "?"
- Paragraphs are separated by one blank line ("\\n\\n"), never two in a row
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

from transcript_refiner.config import MAX_GRAM, PARAGRAPH_CHAR_LIMIT, SHORT_SENTENCE_MAX_WORDS

# Interjections and hedge words dropped from the cleaned transcript.
FILLER_WORDS: List[str] = [
    "um",
    "umm",
    "uh",
    "uhh",
    "ah",
    "er",
    "you know",
    "like",
    "matlab",
    "actually",
    "basically",
    "literally",
    "hmm",
    "mm",
]

# Conjunctions that open a new clause for auto-punctuation.
CLAUSE_CONJUNCTIONS: List[str] = ["and", "but", "so", "because"]


def _phrase_pattern(phrase: str) -> str:
    return r"\s+".join(re.escape(word) for word in phrase.split())


_FILLER_PATTERNS = [
    re.compile(r"\b{}\b".format(_phrase_pattern(word)), re.IGNORECASE)
    for word in FILLER_WORDS
]
_WHITESPACE_RE = re.compile(r"\s+")
_DUPLICATE_WORD_RE = re.compile(r"\b(\w+)(?:\s+\1\b)+", re.IGNORECASE)
_CLAUSE_SPLIT_RE = re.compile(
    r"\s+(?=(?:{})\b)".format("|".join(CLAUSE_CONJUNCTIONS)),
    re.IGNORECASE,
)
_TERMINAL_END_RE = re.compile(r"[.!?]$")
_SENTENCE_START_RE = re.compile(r"(^\w|[.!?]\s+\w)")
_PRONOUN_I_RE = re.compile(r"\bi\b")
_SMALL_REPEAT_RE = re.compile(r"\b(\w{2,6})\b\s+\b\1\b", re.IGNORECASE)
_DOUBLE_PUNCT_RE = re.compile(r"([.!?])\1+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.!?])")
_MISSING_SPACE_AFTER_PUNCT_RE = re.compile(r"([.!?])(\w)")
_EXTRA_SPACE_AFTER_PUNCT_RE = re.compile(r"([.!?])[ \t]{2,}(?=\w)")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class CleaningOptions:
    """Tunables for clean_text().

    RULES:
    - max_gram: largest repeated phrase collapsed (down to 2 words)
    - short_sentence_max_words: sentences this short merge into the previous one
    - paragraph_char_limit: running characters before a paragraph break
    """

    max_gram: int = MAX_GRAM
    short_sentence_max_words: int = SHORT_SENTENCE_MAX_WORDS
    paragraph_char_limit: int = PARAGRAPH_CHAR_LIMIT


DEFAULT_OPTIONS = CleaningOptions()


# ---------------------------------------------------------------------------
# Stage functions
# ---------------------------------------------------------------------------


def remove_fillers(text: str) -> str:
    """Drop every filler word and collapse the whitespace left behind.

    WHY: Removing one filler can bring the words of another together
    ("you like know" → "you know"), so a single pass is not idempotent.

    HOW: Applies every filler pattern in vocabulary order, collapses
    whitespace runs to one space and trims, and repeats until nothing
    changes.
    """
    if not text:
        return ""
    out = text
    previous = None
    while out != previous:
        previous = out
        for pattern in _FILLER_PATTERNS:
            out = pattern.sub("", out)
        out = _WHITESPACE_RE.sub(" ", out).strip()
    return out


def collapse_duplicate_words(text: str) -> str:
    """Keep one copy of any word immediately followed by itself."""
    return _DUPLICATE_WORD_RE.sub(r"\1", text)


def remove_repeated_phrases(text: str, max_gram: int = MAX_GRAM) -> str:
    """Delete the second copy of immediately repeated word sequences.

    WHY: Speakers restart phrases ("go to the store go to the store").
    Checking long sequences before short ones keeps a repeated phrase
    from being mis-absorbed as several shorter repeats.

    HOW: For n from max_gram down to 2, scan left to right. When the n
    words at i equal (case-insensitively) the n words at i + n, delete
    the second run and re-check position i, since the words shifted left
    and a new repeat may now be adjacent. Otherwise advance by one.

    RULES:
    - Greedy by design; ambiguous inputs keep this exact output
    - Words are whitespace-separated tokens, compared lowercased
    """
    words = text.split()
    for size in range(max_gram, 1, -1):
        i = 0
        while i + 2 * size <= len(words):
            first = [w.lower() for w in words[i:i + size]]
            second = [w.lower() for w in words[i + size:i + 2 * size]]
            if first == second:
                del words[i + size:i + 2 * size]
            else:
                i += 1
    return " ".join(words)


def auto_punctuate(text: str) -> str:
    """Split before clause-opening conjunctions and close each clause.

    Each clause gets an uppercase first letter and a trailing period
    unless it already ends in terminal punctuation.
    """
    clauses: List[str] = []
    for part in _CLAUSE_SPLIT_RE.split(text):
        part = part.strip()
        if not part:
            continue
        part = part[0].upper() + part[1:]
        if not _TERMINAL_END_RE.search(part):
            part += "."
        clauses.append(part)
    return " ".join(clauses)


def fix_capitalization(text: str) -> str:
    """Uppercase the first letter of the text and of every sentence."""
    return _SENTENCE_START_RE.sub(lambda m: m.group(0).upper(), text)


def fix_pronoun_i(text: str) -> str:
    """Replace the standalone lowercase pronoun "i" with "I"."""
    return _PRONOUN_I_RE.sub("I", text)


def remove_small_repeats(text: str) -> str:
    """Collapse a short word (2–6 chars) immediately followed by itself.

    Catches repeats that only became adjacent or equal after the
    capitalization stages ran.
    """
    return _SMALL_REPEAT_RE.sub(r"\1", text)


def remove_double_punctuation(text: str) -> str:
    """Collapse runs of the same terminal punctuation mark ("!!" → "!")."""
    return _DOUBLE_PUNCT_RE.sub(r"\1", text)


def fix_punctuation_spacing(text: str) -> str:
    """No space before terminal punctuation, exactly one space after it."""
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _MISSING_SPACE_AFTER_PUNCT_RE.sub(r"\1 \2", text)
    return _EXTRA_SPACE_AFTER_PUNCT_RE.sub(r"\1 ", text)


def merge_short_sentences(text: str, max_words: int = SHORT_SENTENCE_MAX_WORDS) -> str:
    """Fold short sentences into the previous sentence as a comma clause.

    WHY: Dictation produces choppy fragments ("Yes. I agree.") that read
    better as one sentence ("Yes, I agree.").

    HOW: Split on sentence boundaries. A sentence with at most max_words
    words is appended to the previous output sentence after replacing
    that sentence's terminal mark with ", ". The first sentence has no
    predecessor and always stands alone.
    """
    merged: List[str] = []
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        sentence = sentence.strip()
        if not sentence:
            continue
        words = _TERMINAL_END_RE.sub("", sentence).split()
        if words and merged and len(words) <= max_words:
            merged[-1] = _TERMINAL_END_RE.sub("", merged[-1]) + ", " + sentence
        else:
            merged.append(sentence)
    return " ".join(merged)


def auto_paragraph(text: str, char_limit: int = PARAGRAPH_CHAR_LIMIT) -> str:
    """Group sentences into paragraphs of roughly char_limit characters.

    HOW: Sentences accumulate into the current paragraph while a running
    character count grows. Once the count since the last break exceeds
    char_limit, the paragraph is closed and the count resets. Paragraphs
    are joined with one blank line.
    """
    paragraphs: List[str] = []
    current: List[str] = []
    count = 0
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        sentence = sentence.strip()
        if not sentence:
            continue
        current.append(sentence)
        count += len(sentence)
        if count > char_limit:
            paragraphs.append(" ".join(current))
            current = []
            count = 0
    if current:
        paragraphs.append(" ".join(current))
    return "\n\n".join(paragraphs)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def clean_text(raw: str, options: CleaningOptions | None = None) -> str:
    """Run the full cleaning pipeline over a processed transcript.

    Args:
        raw: Processed (dictation-substituted) transcript text. None and
             "" are both treated as empty.
        options: Optional tunables; defaults come from config.

    Returns:
        The cleaned, capitalized, paragraphed transcript.
    """
    opts = options or DEFAULT_OPTIONS
    t = (raw or "").lower()

    t = remove_fillers(t)
    t = collapse_duplicate_words(t)
    t = remove_repeated_phrases(t, opts.max_gram)
    t = auto_punctuate(t)
    t = fix_capitalization(t)
    t = fix_pronoun_i(t)
    t = remove_small_repeats(t)
    t = remove_double_punctuation(t)
    t = fix_punctuation_spacing(t)
    t = merge_short_sentences(t, opts.short_sentence_max_words)
    t = auto_paragraph(t, opts.paragraph_char_limit)

    return t.strip()
