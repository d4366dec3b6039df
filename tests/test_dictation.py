"""Tests for spoken dictation command substitution."""

from __future__ import annotations

import pytest

from transcript_refiner.core.dictation import DICTATION_COMMANDS, apply_dictation


class TestApplyDictation:

    def test_disabled_returns_input_unchanged(self):
        text = "hello comma world period"
        assert apply_dictation(text, False) == text

    def test_punctuation_commands(self):
        assert apply_dictation("hello comma world period", True) == "hello, world."

    @pytest.mark.parametrize("spoken, expected", [
        ("is it done question mark", "is it done?"),
        ("wow exclamation mark", "wow!"),
        ("first new line second", "first\nsecond"),
        ("first new paragraph second", "first\n\nsecond"),
    ])
    def test_each_command(self, spoken, expected):
        assert apply_dictation(spoken, True) == expected

    def test_space_before_mark_absorbed_space_after_kept(self):
        assert apply_dictation("hello  comma   world", True) == "hello,   world"

    def test_spaces_around_breaks_absorbed(self):
        assert apply_dictation("one  new line  two", True) == "one\ntwo"

    def test_case_insensitive(self):
        assert apply_dictation("Hello COMMA world", True) == "Hello, world"

    def test_whole_words_only(self):
        assert apply_dictation("a periodic commando", True) == "a periodic commando"

    def test_multi_word_phrase_allows_extra_spaces(self):
        assert apply_dictation("really question   mark", True) == "really?"

    def test_empty(self):
        assert apply_dictation("", True) == ""

    def test_table_order(self):
        phrases = [phrase for phrase, _symbol in DICTATION_COMMANDS]
        assert phrases == [
            "comma", "period", "question mark", "exclamation mark", "new line", "new paragraph",
        ]
