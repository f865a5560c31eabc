"""
desktop_surface.py - Target surface for whatever window has focus on the desktop.

Structured edit commands are realised with pyautogui: "insertText" writes the
character when pyautogui knows a key for it, "insertParagraph" presses Enter,
"insertLineBreak" presses Shift+Enter and "paste" sends the platform paste
shortcut. Synthetic key events go through pynput's keyboard controller (the
focus target) or through pyautogui key-down / key-up (the top-level target).
There is no inner document on the desktop.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Optional

import pyautogui
from pynput.keyboard import Controller, Key

from surface import (
    CMD_INSERT_LINE_BREAK,
    CMD_INSERT_PARAGRAPH,
    CMD_INSERT_TEXT,
    CMD_PASTE,
    KEYDOWN,
    KEYUP,
    InputEvent,
    KeyEvent,
    SurfaceEvent,
    SurfaceNotFoundError,
)

logger = logging.getLogger(__name__)

# We handle all timing ourselves.
pyautogui.PAUSE = 0
pyautogui.FAILSAFE = True

# Delay between key-down and key-up (seconds).
_KEY_HOLD = 0.012

_PASTE_MODIFIER = "command" if sys.platform == "darwin" else "ctrl"

# KeyEvent.key values that are not plain characters.
_PYNPUT_SPECIAL_KEYS = {
    "Enter": Key.enter,
    "Tab": Key.tab,
    "Backspace": Key.backspace,
}
_PYAUTOGUI_SPECIAL_KEYS = {
    "Enter": "enter",
    "Tab": "tab",
    "Backspace": "backspace",
}


class KeyboardTarget:
    """Dispatches key events to the focused control through pynput."""

    def __init__(self, controller: Optional[Controller] = None) -> None:
        self.controller = controller or Controller()

    def dispatch_event(self, event: SurfaceEvent) -> None:
        if isinstance(event, InputEvent):
            self.controller.type(event.data)
            return

        key = _PYNPUT_SPECIAL_KEYS.get(event.key, event.key)
        if event.ctrl:
            # A ctrl shortcut is one complete keystroke.
            with self.controller.pressed(Key.ctrl):
                self.controller.press(key)
                time.sleep(_KEY_HOLD)
                self.controller.release(key)
        elif event.type == KEYDOWN:
            self.controller.press(key)
        elif event.type == KEYUP:
            self.controller.release(key)
        # keypress has no counterpart: the OS derives it from down / up.


class ScreenTarget:
    """Dispatches key events through pyautogui (the top-level fallback)."""

    def dispatch_event(self, event: SurfaceEvent) -> None:
        if isinstance(event, InputEvent):
            pyautogui.write(event.data)
            return

        key = _PYAUTOGUI_SPECIAL_KEYS.get(event.key, event.key)
        if event.ctrl:
            pyautogui.hotkey("ctrl", key)
        elif event.type == KEYDOWN:
            pyautogui.keyDown(key)
            time.sleep(_KEY_HOLD)
        elif event.type == KEYUP:
            pyautogui.keyUp(key)


class DesktopSurface:
    """The focused desktop window, optionally focused by clicking a point first."""

    def __init__(
        self,
        click_point: Optional[tuple[int, int]] = None,
        keyboard: Optional[KeyboardTarget] = None,
    ) -> None:
        self.click_point = click_point
        self.keyboard = keyboard or KeyboardTarget()
        self.screen = ScreenTarget()

    def focus(self) -> None:
        if self.click_point is None:
            return
        x, y = self.click_point
        pyautogui.click(x, y)
        time.sleep(0.1)

    def exec_command(self, command: str, value: Optional[str] = None) -> bool:
        if command == CMD_INSERT_TEXT:
            if not value or not all(pyautogui.isValidKey(ch) for ch in value):
                return False
            pyautogui.write(value)
            return True
        if command == CMD_INSERT_PARAGRAPH:
            pyautogui.press("enter")
            return True
        if command == CMD_INSERT_LINE_BREAK:
            pyautogui.hotkey("shift", "enter")
            return True
        if command == CMD_PASTE:
            pyautogui.hotkey(_PASTE_MODIFIER, "v")
            return True
        logger.debug("Unsupported edit command %r", command)
        return False

    def inner_body(self) -> None:
        return None

    def focused_target(self) -> KeyboardTarget:
        return self.keyboard

    def document(self) -> ScreenTarget:
        return self.screen


def locate_desktop_surface(
    click_point: Optional[tuple[int, int]] = None,
) -> DesktopSurface:
    """Return the desktop surface; the click point must lie on screen."""
    if click_point is not None and not pyautogui.onScreen(*click_point):
        width, height = pyautogui.size()
        raise SurfaceNotFoundError(
            f"Click point {click_point} is outside the {width}x{height} screen"
        )
    return DesktopSurface(click_point)
