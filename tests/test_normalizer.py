"""Tests for normalizer.py - canonical text folding."""
import pytest

from normalizer import DISALLOWED_CHARS, normalize

TRICKY_INPUTS = [
    "",
    "plain text",
    "  leading and trailing  ",
    "\u2018Smart\u2019 \u201Cquotes\u201D and \u2014 dashes \u2013 here",
    "Wait for it\u2026",
    "non\u00A0breaking\u202Fspace",
    "zero\u200Bwidth\u200Djoiner\uFEFF",
    "caf\u00E9 na\u00EFve r\u00E9sum\u00E9",
    "a\r\nb\rc\nd",
    "para one\n\n\n\npara two",
    "line \t \n\t next",
    "\n\u200B\n\n",
    "\n\x0c\n",
    "\u2022 item one\n\u25E6 item two",
    "\u00A9 2024 Acme\u00AE Widget\u2122",
    "5\u2032 11\u2033",
    "tabs\t\tand   spaces",
    "  \n\n  ",
    "mixed\u2028separator\u2029here",
]


class TestNormalize:
    def test_empty_input_gives_empty_output(self):
        assert normalize("") == ""

    def test_smart_quotes_become_ascii(self):
        assert normalize("\u2018hi\u2019 \u201Cthere\u201D") == "'hi' \"there\""

    def test_dashes_become_hyphens(self):
        assert normalize("a\u2013b\u2014c") == "a-b-c"

    def test_ellipsis_becomes_three_dots(self):
        assert normalize("so\u2026") == "so..."

    def test_non_breaking_space_becomes_space(self):
        assert normalize("a\u00A0b") == "a b"

    def test_zero_width_characters_are_removed(self):
        assert normalize("ab\u200Cc\u2060d") == "abcd"

    def test_accents_are_stripped(self):
        assert normalize("caf\u00E9") == "cafe"

    def test_symbols_become_text(self):
        assert normalize("\u00A9\u00AE\u2122") == "(c)(R)(TM)"

    def test_bullets_become_asterisks(self):
        assert normalize("\u2022 one") == "* one"

    def test_prime_marks(self):
        assert normalize("5\u203211\u2033") == "5'11\""

    def test_line_endings_are_unified(self):
        assert normalize("a\r\nb\rc") == "a\nb\nc"

    def test_blank_line_runs_collapse_to_one_paragraph_break(self):
        assert normalize("one\n\n \n\n\ntwo") == "one\n\ntwo"

    def test_single_line_break_is_kept(self):
        assert normalize("one\ntwo") == "one\ntwo"

    def test_spaces_and_tabs_collapse(self):
        assert normalize("a  \t b") == "a b"

    def test_spaces_next_to_line_breaks_are_stripped(self):
        assert normalize("a  \n  b") == "a\nb"

    def test_whole_text_is_trimmed(self):
        assert normalize("\n\n  hello  \n") == "hello"

    def test_emptied_line_does_not_leave_three_breaks(self):
        assert normalize("a\n\u200B\n\nb") == "a\n\nb"

    @pytest.mark.parametrize("text", TRICKY_INPUTS)
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once

    @pytest.mark.parametrize("text", TRICKY_INPUTS)
    def test_output_has_no_disallowed_characters(self, text):
        result = normalize(text)
        assert not [ch for ch in result if ch in DISALLOWED_CHARS]
        assert "  " not in result
        assert "\n\n\n" not in result
        assert result == result.strip()
