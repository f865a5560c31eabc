"""Pytest fixtures and fake collaborators."""
import os
import sys

import pytest

# Ensure project root is on path
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _project_root)

from events import EngineListener  # noqa: E402
from surface import CMD_INSERT_TEXT, CMD_PASTE  # noqa: E402


class FakeTarget:
    def __init__(self, name, fail=False):
        self.name = name
        self.fail = fail
        self.events = []

    def dispatch_event(self, event):
        if self.fail:
            raise RuntimeError(f"{self.name} refused the event")
        self.events.append(event)


class FakeSurface:
    """Records every command; results are configurable per command name."""

    def __init__(self, results=None, inner=False, focused=True):
        self.results = {CMD_INSERT_TEXT: True}
        self.results.update(results or {})
        self.commands = []
        self.focus_calls = 0
        self.inner = FakeTarget("inner") if inner else None
        self.focused = FakeTarget("focused") if focused else None
        self.doc = FakeTarget("document")
        self.pasted = None
        self.clipboard = None

    def focus(self):
        self.focus_calls += 1

    def exec_command(self, command, value=None):
        self.commands.append((command, value))
        result = self.results.get(command, False)
        if isinstance(result, Exception):
            raise result
        if command == CMD_PASTE and result and self.clipboard is not None:
            self.pasted = self.clipboard.text
        return result

    def inner_body(self):
        return self.inner

    def focused_target(self):
        return self.focused

    def document(self):
        return self.doc

    def typed_text(self):
        return "".join(value for cmd, value in self.commands if cmd == CMD_INSERT_TEXT and value)


class FakeClipboard:
    def __init__(self, fail=False):
        self.text = ""
        self.fail = fail
        self.writes = []

    def write_text(self, text):
        if self.fail:
            raise PermissionError("clipboard write denied")
        self.writes.append(text)
        self.text = text

    def read_text(self):
        return self.text


class RecordingListener(EngineListener):
    def __init__(self):
        self.events = []
        self.progress = []
        self.states = []

    def on_progress(self, progress):
        self.progress.append(progress)

    def on_state_changed(self, old, new):
        self.states.append((old, new))

    def on_completed(self):
        self.events.append("completed")

    def on_stopped(self):
        self.events.append("stopped")

    def on_error(self, message):
        self.events.append(("error", message))


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def listener():
    return RecordingListener()
