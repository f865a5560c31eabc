"""
instructions.py - Turn canonical text plus formatting events into the ordered
instruction stream a run replays.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping, Sequence, Union

from formatting import FormatEdge, FormatKind, FormattingEvent, parse_formatting
from normalizer import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CharacterInsert:
    char: str


@dataclass(frozen=True)
class FormatToggle:
    kind: FormatKind
    edge: FormatEdge


Instruction = Union[CharacterInsert, FormatToggle]


class InstructionStream:
    """Immutable, replayable sequence of instructions."""

    def __init__(self, instructions: Sequence[Instruction]) -> None:
        self._instructions = tuple(instructions)

    def __len__(self) -> int:
        return len(self._instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self._instructions[index]

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self._instructions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InstructionStream):
            return NotImplemented
        return self._instructions == other._instructions

    def __repr__(self) -> str:
        return f"InstructionStream({len(self)} instructions)"

    @property
    def character_count(self) -> int:
        return sum(1 for ins in self._instructions if isinstance(ins, CharacterInsert))

    def text(self) -> str:
        """The characters the stream types, without formatting."""
        return "".join(
            ins.char for ins in self._instructions if isinstance(ins, CharacterInsert)
        )


def build_stream(
    text: str, events: Mapping[int, Sequence[FormattingEvent]] | None = None
) -> InstructionStream:
    """Interleave format toggles into the characters of *text*.

    Toggles for offset ``i`` are emitted before the character at ``i``;
    toggles at ``len(text)`` close formatting after the last character.
    Offsets past the end of *text* are clamped to ``len(text)``.
    """
    size = len(text)
    by_offset: dict[int, list[FormattingEvent]] = {}
    for offset, bucket in (events or {}).items():
        clamped = min(max(0, offset), size)
        if clamped != offset:
            logger.debug("Clamped formatting offset %d to %d", offset, clamped)
        by_offset.setdefault(clamped, []).extend(bucket)

    instructions: list[Instruction] = []
    for offset in range(size + 1):
        for event in sorted(by_offset.get(offset, ()), key=FormattingEvent.sort_key):
            instructions.append(FormatToggle(event.kind, event.edge))
        if offset < size:
            instructions.append(CharacterInsert(text[offset]))

    return InstructionStream(instructions)


def prepare_text(
    text: str, preserve_formatting: bool
) -> tuple[str, dict[int, list[FormattingEvent]]]:
    """Parse markers (when enabled) then normalize what is left.

    Marker offsets are computed before normalization. When normalization
    changes the length of the text in front of a marker the offsets drift;
    ``build_stream`` keeps them inside the text.
    """
    events: dict[int, list[FormattingEvent]] = {}
    if preserve_formatting:
        text, events = parse_formatting(text)
        logger.debug("Found %d formatting markers", sum(len(b) for b in events.values()))

    canonical = normalize(text)
    logger.debug("Normalized %d characters to %d", len(text), len(canonical))
    return canonical, events
