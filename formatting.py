"""
formatting.py - Strip inline markdown-style markers and record where they were.

Three marker grammars are recognised, each in its own pass and always in the
same order:

    bold       **text**  or  __text__
    italic     *text*    or  _text_
    underline  ~~text~~

Each pass strips its delimiters and records a START event where the enclosed
content begins and an END event where it stops. Offsets index the text left
after *all* passes, so events recorded by an earlier pass are shifted when a
later pass removes delimiters in front of them. Unterminated markers are left
in the text as literal characters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class FormatKind(str, Enum):
    """Inline styles, listed in toggle priority order."""

    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"

    @property
    def priority(self) -> int:
        return _KIND_PRIORITY[self]


_KIND_PRIORITY = {FormatKind.BOLD: 0, FormatKind.ITALIC: 1, FormatKind.UNDERLINE: 2}


class FormatEdge(str, Enum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class FormattingEvent:
    offset: int
    kind: FormatKind
    edge: FormatEdge

    def sort_key(self) -> tuple[int, int, int]:
        # A span of one kind closes before the next span of that kind opens.
        return (self.offset, self.kind.priority, 0 if self.edge is FormatEdge.END else 1)


# Bold: same delimiter on both sides, non-greedy, single line.
_BOLD_RE = re.compile(r"(\*\*|__)(.+?)\1")

# Italic: a lone delimiter, never one half of a doubled delimiter.
_ITALIC_RE = re.compile(
    r"(?<!\*)(\*)(?!\*)(.+?)(?<!\*)\*(?!\*)"
    r"|(?<!_)(_)(?!_)(.+?)(?<!_)_(?!_)"
)

_UNDERLINE_RE = re.compile(r"(~~)(.+?)~~")


def _match_parts(match: re.Match[str]) -> tuple[str, str]:
    """Return (delimiter, content) for a match of any of the marker patterns."""
    groups = [g for g in match.groups() if g is not None]
    return groups[0], groups[1]


def _strip_pass(
    text: str, pattern: re.Pattern[str], kind: FormatKind
) -> tuple[str, list[FormattingEvent], list[int]]:
    """Strip one marker grammar from *text*.

    Returns the stripped text, the events found (offsets into the stripped
    text) and the positions in *text* of every removed delimiter character.
    """
    pieces: list[str] = []
    events: list[FormattingEvent] = []
    removed: list[int] = []
    last = 0
    shift = 0

    for match in pattern.finditer(text):
        marker, content = _match_parts(match)
        width = len(marker)
        start = match.start() - shift
        end = start + len(content)

        pieces.append(text[last:match.start()])
        pieces.append(content)
        last = match.end()

        events.append(FormattingEvent(start, kind, FormatEdge.START))
        events.append(FormattingEvent(end, kind, FormatEdge.END))
        removed.extend(range(match.start(), match.start() + width))
        removed.extend(range(match.end() - width, match.end()))
        shift += 2 * width

    pieces.append(text[last:])
    return "".join(pieces), events, removed


def _shift_events(
    events: list[FormattingEvent], removed: list[int]
) -> list[FormattingEvent]:
    """Re-express *events* against text that lost the characters at *removed*."""
    if not removed:
        return events

    shifted = []
    for event in events:
        dropped = sum(1 for pos in removed if pos < event.offset)
        shifted.append(FormattingEvent(event.offset - dropped, event.kind, event.edge))
    return shifted


_PASSES = (
    (_BOLD_RE, FormatKind.BOLD),
    (_ITALIC_RE, FormatKind.ITALIC),
    (_UNDERLINE_RE, FormatKind.UNDERLINE),
)


def parse_formatting(text: str) -> tuple[str, dict[int, list[FormattingEvent]]]:
    """Strip formatting markers from *text*.

    Returns ``(stripped_text, events)`` where *events* maps each offset in
    the stripped text to the events at that offset, ordered by offset and
    then by kind priority.
    """
    collected: list[FormattingEvent] = []

    for pattern, kind in _PASSES:
        text, found, removed = _strip_pass(text, pattern, kind)
        collected = _shift_events(collected, removed)
        collected.extend(found)

    unique = sorted(set(collected), key=FormattingEvent.sort_key)
    events: dict[int, list[FormattingEvent]] = {}
    for event in unique:
        events.setdefault(event.offset, []).append(event)
    return text, events
