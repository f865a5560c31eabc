"""
insertion.py - Type one character into a target surface, whatever it takes.

Host surfaces refuse individual insertion techniques for all sorts of
reasons (sandboxing, missing permissions, canvas-backed editors). The
executor therefore walks an ordered chain of mechanisms:

1. structured edit command ("insertText", or "insertParagraph" with an
   "insertLineBreak" fallback for newlines)
2. clipboard round-trip: write the character, then run "paste"
3. synthetic keydown / keypress / keyup triplet sent to one target
4. raw input event (multi-method mode only)

In single-method mode (the default) the chain stops at the first mechanism
that succeeds. Multi-method mode runs every mechanism for diagnosis.
Nothing here is fatal: the caller always gets an ``InsertionOutcome``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from formatting import FormatKind
from surface import (
    CMD_INSERT_LINE_BREAK,
    CMD_INSERT_PARAGRAPH,
    CMD_INSERT_TEXT,
    CMD_PASTE,
    KEYDOWN,
    KEYPRESS,
    KEYUP,
    ClipboardProvider,
    DispatchTarget,
    InputEvent,
    KeyEvent,
    TargetSurface,
)

logger = logging.getLogger(__name__)

ENTER_KEY_CODE = 13

_PUNCTUATION_CODES = {
    "`": "Backquote", "~": "Backquote",
    "-": "Minus", "_": "Minus",
    "=": "Equal", "+": "Equal",
    "[": "BracketLeft", "{": "BracketLeft",
    "]": "BracketRight", "}": "BracketRight",
    "\\": "Backslash", "|": "Backslash",
    ";": "Semicolon", ":": "Semicolon",
    "'": "Quote", '"': "Quote",
    ",": "Comma", "<": "Comma",
    ".": "Period", ">": "Period",
    "/": "Slash", "?": "Slash",
}

_SHIFTED_DIGITS = {
    "!": "1", "@": "2", "#": "3", "$": "4", "%": "5",
    "^": "6", "&": "7", "*": "8", "(": "9", ")": "0",
}

# Ctrl shortcut that toggles each style.
FORMAT_SHORTCUTS = {
    FormatKind.BOLD: ("b", 66),
    FormatKind.ITALIC: ("i", 73),
    FormatKind.UNDERLINE: ("u", 85),
}


class Mechanism(str, Enum):
    EDIT_COMMAND = "edit_command"
    CLIPBOARD = "clipboard"
    KEY_EVENTS = "key_events"
    INPUT_EVENT = "input_event"


@dataclass(frozen=True)
class InsertionPolicy:
    single_method: bool = True


@dataclass(frozen=True)
class InsertionOutcome:
    succeeded: bool
    mechanism_used: Optional[Mechanism]
    attempts: tuple[str, ...] = ()


def key_event_fields(ch: str) -> tuple[str, str, int, int]:
    """Return (key, code, key_code, char_code) for typing *ch*."""
    if ch == "\n":
        return "Enter", "Enter", ENTER_KEY_CODE, 0
    if ch == "\t":
        return "Tab", "Tab", 9, 0
    if ch == " ":
        return " ", "Space", 32, 32
    if ch.isascii() and ch.isalpha():
        return ch, f"Key{ch.upper()}", ord(ch.upper()), ord(ch)
    if ch.isascii() and ch.isdigit():
        return ch, f"Digit{ch}", ord(ch), ord(ch)
    if ch in _SHIFTED_DIGITS:
        digit = _SHIFTED_DIGITS[ch]
        return ch, f"Digit{digit}", ord(digit), ord(ch)
    return ch, _PUNCTUATION_CODES.get(ch, ""), ord(ch), ord(ch)


def pick_dispatch_target(surface: TargetSurface) -> DispatchTarget:
    """Choose exactly one target: inner body, else focus target, else document."""
    try:
        inner = surface.inner_body()
    except Exception as exc:
        logger.debug("Inner body not reachable: %s", exc)
        inner = None
    if inner is not None:
        return inner

    focused = surface.focused_target()
    if focused is not None:
        return focused
    return surface.document()


class InsertionExecutor:
    """Runs the mechanism chain for one instruction at a time."""

    def __init__(
        self,
        clipboard: Optional[ClipboardProvider] = None,
        sleep: Callable[[float], object] = time.sleep,
        format_settle_s: float = 0.05,
    ) -> None:
        self.clipboard = clipboard
        self.sleep = sleep
        self.format_settle_s = max(0.0, format_settle_s)

    # ── Character insertion ───────────────────────────────────────
    def insert_character(
        self,
        ch: str,
        surface: TargetSurface,
        policy: InsertionPolicy = InsertionPolicy(),
    ) -> InsertionOutcome:
        attempts: list[str] = []
        used: Optional[Mechanism] = None

        chain: list[tuple[Mechanism, Callable[[], Optional[bool]]]] = [
            (Mechanism.EDIT_COMMAND, lambda: self._edit_command(ch, surface)),
            (Mechanism.CLIPBOARD, lambda: self._clipboard_paste(ch, surface)),
            (Mechanism.KEY_EVENTS, lambda: self._key_events(ch, surface)),
        ]
        if not policy.single_method:
            chain.append((Mechanism.INPUT_EVENT, lambda: self._input_event(ch, surface)))

        for mechanism, attempt in chain:
            try:
                result = attempt()
            except Exception as exc:
                attempts.append(f"{mechanism.value}: failed ({exc})")
                logger.debug("%s failed for %r: %s", mechanism.value, ch, exc)
                continue

            if result is None:
                attempts.append(f"{mechanism.value}: not available")
                continue

            attempts.append(f"{mechanism.value}: {result}")
            if result and used is None:
                used = mechanism
                if policy.single_method:
                    break

        outcome = InsertionOutcome(used is not None, used, tuple(attempts))
        if outcome.succeeded:
            logger.debug("Typed %r via %s (%s)", ch, used.value, ", ".join(attempts))
        else:
            logger.warning("Could not type %r: %s", ch, ", ".join(attempts))
        return outcome

    def _edit_command(self, ch: str, surface: TargetSurface) -> bool:
        if ch == "\n":
            return bool(
                surface.exec_command(CMD_INSERT_PARAGRAPH)
                or surface.exec_command(CMD_INSERT_LINE_BREAK)
            )
        return bool(surface.exec_command(CMD_INSERT_TEXT, ch))

    def _clipboard_paste(self, ch: str, surface: TargetSurface) -> Optional[bool]:
        """None means the mechanism does not apply to *ch* or has no clipboard."""
        if self.clipboard is None or ch == "\n" or len(ch) != 1:
            return None
        self.clipboard.write_text(ch)
        return bool(surface.exec_command(CMD_PASTE))

    def _key_events(self, ch: str, surface: TargetSurface) -> bool:
        key, code, key_code, char_code = key_event_fields(ch)
        target = pick_dispatch_target(surface)
        for event_type in (KEYDOWN, KEYPRESS, KEYUP):
            target.dispatch_event(KeyEvent(event_type, key, code, key_code, char_code))
        # The effect of synthetic keys cannot be observed; count it as typed.
        return True

    def _input_event(self, ch: str, surface: TargetSurface) -> bool:
        pick_dispatch_target(surface).dispatch_event(InputEvent(ch))
        return True

    # ── Formatting ────────────────────────────────────────────────
    def toggle_format(self, kind: FormatKind, surface: TargetSurface) -> None:
        """Send the Ctrl shortcut for *kind*, then let the surface settle."""
        key, key_code = FORMAT_SHORTCUTS[kind]
        event = KeyEvent(KEYDOWN, key, f"Key{key.upper()}", key_code, 0, ctrl=True)
        try:
            pick_dispatch_target(surface).dispatch_event(event)
        except Exception as exc:
            logger.warning("Applying %s formatting failed: %s", kind.value, exc)
            return
        logger.debug("Toggled %s", kind.value)
        self.sleep(self.format_settle_s)
