"""
normalizer.py - Fold confusable and invisible characters into canonical text.

Editors and word processors sprinkle source text with smart quotes, long
dashes, exotic spaces and zero-width joiners. Typing those one key at a time
is unreliable, so every run types a canonical form instead: the text is
decomposed, line endings are unified, a fixed substitution table is applied
and whitespace is folded.
"""

from __future__ import annotations

import re
import unicodedata

_NEWLINES_RE = re.compile(r"\r\n?")
_BLANK_LINES_RE = re.compile(r"\n\s*\n")
_SPACE_RUN_RE = re.compile(r"[ \t]+")
_SPACE_AROUND_NEWLINE_RE = re.compile(r"[^\S\n]*\n[^\S\n]*")
_EXTRA_NEWLINES_RE = re.compile(r"\n{3,}")

_SINGLE_QUOTES = "\u2018\u2019\u201A\u201B"
_DOUBLE_QUOTES = "\u201C\u201D\u201E\u201F"
_DASHES = "\u2010\u2011\u2012\u2013\u2014\u2015\u2212"
_NO_BREAK_SPACES = "\u00A0\u202F"
_UNICODE_SPACES = (
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200A"
    "\u205F\u3000\u2028\u2029"
)
_ZERO_WIDTH = "\u200B\u200C\u200D\u2060\uFEFF"
_BULLETS = "\u2022\u2023\u2043\u25E6"

# Applied in order; each entry is (pattern, replacement).
_SUBSTITUTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(f"[{_SINGLE_QUOTES}]"), "'"),
    (re.compile(f"[{_DOUBLE_QUOTES}]"), '"'),
    (re.compile(f"[{_DASHES}]"), "-"),
    (re.compile("\u2026"), "..."),
    (re.compile(f"[{_NO_BREAK_SPACES}]"), " "),
    (re.compile(f"[{_UNICODE_SPACES}]"), " "),
    (re.compile(f"[{_ZERO_WIDTH}]"), ""),
    (re.compile("[\u0300-\u036F]"), ""),
    (re.compile("\u2032"), "'"),
    (re.compile("\u2033"), '"'),
    (re.compile(f"[{_BULLETS}]"), "*"),
    (re.compile("\u00A9"), "(c)"),
    (re.compile("\u00AE"), "(R)"),
    (re.compile("\u2122"), "(TM)"),
]

# Code points that never survive normalization.
DISALLOWED_CHARS = frozenset(
    _SINGLE_QUOTES
    + _DOUBLE_QUOTES
    + _DASHES
    + "\u2026"
    + _NO_BREAK_SPACES
    + _UNICODE_SPACES
    + _ZERO_WIDTH
    + "\u2032\u2033"
    + _BULLETS
    + "\u00A9\u00AE\u2122"
    + "\r"
) | frozenset(chr(cp) for cp in range(0x0300, 0x0370))


def _fold_whitespace(text: str) -> str:
    text = _SPACE_RUN_RE.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE_RE.sub("\n", text)
    # A line emptied by the substitutions can leave three breaks in a row.
    text = _EXTRA_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def normalize(text: str) -> str:
    """Return the canonical form of *text*.

    Total and deterministic: ``normalize(normalize(s)) == normalize(s)``
    and the result never contains a character from ``DISALLOWED_CHARS``.
    """
    if not text:
        return ""

    cleaned = unicodedata.normalize("NFD", text)
    cleaned = _NEWLINES_RE.sub("\n", cleaned)
    cleaned = _BLANK_LINES_RE.sub("\n\n", cleaned)

    for pattern, replacement in _SUBSTITUTIONS:
        cleaned = pattern.sub(replacement, cleaned)

    return _fold_whitespace(cleaned)
