"""
surface.py - Contracts for the things a run types into and copies through.

The engine never finds or renders anything itself. A locator hands it a
``TargetSurface``; the surface runs named edit commands and exposes the
places synthetic key events may be dispatched to. A ``ClipboardProvider`` is
optional and only used for the paste fallback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union

import pyperclip

logger = logging.getLogger(__name__)

# Structured edit command names.
CMD_INSERT_TEXT = "insertText"
CMD_INSERT_PARAGRAPH = "insertParagraph"
CMD_INSERT_LINE_BREAK = "insertLineBreak"
CMD_PASTE = "paste"

# Key event types, dispatched in this order for one keystroke.
KEYDOWN = "keydown"
KEYPRESS = "keypress"
KEYUP = "keyup"


class SurfaceNotFoundError(RuntimeError):
    """No editable target surface could be acquired."""


@dataclass(frozen=True)
class KeyEvent:
    type: str
    key: str
    code: str
    key_code: int
    char_code: int = 0
    ctrl: bool = False


@dataclass(frozen=True)
class InputEvent:
    """Generic text-insertion input event."""

    data: str
    input_type: str = CMD_INSERT_TEXT


SurfaceEvent = Union[KeyEvent, InputEvent]


class DispatchTarget(Protocol):
    def dispatch_event(self, event: SurfaceEvent) -> None: ...


class TargetSurface(Protocol):
    def focus(self) -> None: ...

    def exec_command(self, command: str, value: Optional[str] = None) -> bool: ...

    def inner_body(self) -> Optional[DispatchTarget]:
        """An inner document body reachable through the surface, if any."""

    def focused_target(self) -> Optional[DispatchTarget]:
        """Whatever currently holds keyboard focus, if known."""

    def document(self) -> DispatchTarget:
        """The top-level document; always available."""


class ClipboardProvider(Protocol):
    def write_text(self, text: str) -> None: ...

    def read_text(self) -> str: ...


SurfaceLocator = Callable[[], Optional[TargetSurface]]


class PyperclipClipboard:
    """System clipboard through pyperclip.

    pyperclip raises ``PyperclipException`` when no copy/paste mechanism is
    available; callers treat that as a failed write.
    """

    def write_text(self, text: str) -> None:
        pyperclip.copy(text)

    def read_text(self) -> str:
        return pyperclip.paste() or ""


def system_clipboard() -> Optional[PyperclipClipboard]:
    """Return the system clipboard, or None when this machine has none."""
    try:
        pyperclip.paste()
    except pyperclip.PyperclipException as exc:
        logger.info("Clipboard unavailable: %s", exc)
        return None
    return PyperclipClipboard()
