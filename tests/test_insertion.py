"""Tests for insertion.py - the mechanism chain and format toggles."""
import pytest

from conftest import FakeClipboard, FakeSurface
from formatting import FormatKind
from insertion import (
    InsertionExecutor,
    InsertionPolicy,
    Mechanism,
    key_event_fields,
    pick_dispatch_target,
)
from surface import (
    CMD_INSERT_LINE_BREAK,
    CMD_INSERT_PARAGRAPH,
    CMD_INSERT_TEXT,
    CMD_PASTE,
    InputEvent,
    KeyEvent,
)

MULTI = InsertionPolicy(single_method=False)


class TestSingleMethod:
    def test_edit_command_success_stops_the_chain(self, surface, clipboard):
        executor = InsertionExecutor(clipboard=clipboard)
        outcome = executor.insert_character("a", surface)
        assert outcome.succeeded
        assert outcome.mechanism_used is Mechanism.EDIT_COMMAND
        assert surface.commands == [(CMD_INSERT_TEXT, "a")]
        assert clipboard.writes == []
        assert surface.focused.events == []

    def test_clipboard_is_used_when_edit_command_fails(self, clipboard):
        surface = FakeSurface({CMD_INSERT_TEXT: False, CMD_PASTE: True})
        surface.clipboard = clipboard
        outcome = InsertionExecutor(clipboard=clipboard).insert_character("x", surface)
        assert outcome.mechanism_used is Mechanism.CLIPBOARD
        assert clipboard.writes == ["x"]
        assert surface.pasted == "x"
        assert surface.focused.events == []

    def test_key_events_after_edit_and_clipboard_fail_never_reach_input_event(self, clipboard):
        surface = FakeSurface({CMD_INSERT_TEXT: False, CMD_PASTE: False})
        outcome = InsertionExecutor(clipboard=clipboard).insert_character("q", surface)
        assert outcome.succeeded
        assert outcome.mechanism_used is Mechanism.KEY_EVENTS
        assert [e.type for e in surface.focused.events] == ["keydown", "keypress", "keyup"]
        assert not any(isinstance(e, InputEvent) for e in surface.focused.events)
        assert not any(a.startswith("input_event") for a in outcome.attempts)

    def test_throwing_mechanism_falls_through(self):
        surface = FakeSurface({CMD_INSERT_TEXT: RuntimeError("denied")})
        outcome = InsertionExecutor().insert_character("z", surface)
        assert outcome.mechanism_used is Mechanism.KEY_EVENTS
        assert outcome.attempts[0].startswith("edit_command: failed")

    def test_clipboard_write_failure_falls_through(self):
        surface = FakeSurface({CMD_INSERT_TEXT: False, CMD_PASTE: True})
        outcome = InsertionExecutor(clipboard=FakeClipboard(fail=True)).insert_character("z", surface)
        assert outcome.mechanism_used is Mechanism.KEY_EVENTS
        assert (CMD_PASTE, None) not in surface.commands

    def test_missing_clipboard_is_skipped(self):
        surface = FakeSurface({CMD_INSERT_TEXT: False})
        outcome = InsertionExecutor().insert_character("z", surface)
        assert "clipboard: not available" in outcome.attempts
        assert outcome.mechanism_used is Mechanism.KEY_EVENTS

    def test_exhausted_chain_is_not_fatal(self):
        surface = FakeSurface({CMD_INSERT_TEXT: False})
        surface.focused.fail = True
        outcome = InsertionExecutor().insert_character("z", surface)
        assert not outcome.succeeded
        assert outcome.mechanism_used is None
        assert len(outcome.attempts) == 3


class TestLineBreaks:
    def test_newline_uses_insert_paragraph(self, surface):
        surface.results[CMD_INSERT_PARAGRAPH] = True
        outcome = InsertionExecutor().insert_character("\n", surface)
        assert outcome.mechanism_used is Mechanism.EDIT_COMMAND
        assert surface.commands == [(CMD_INSERT_PARAGRAPH, None)]

    def test_newline_falls_back_to_line_break(self, surface):
        surface.results[CMD_INSERT_LINE_BREAK] = True
        InsertionExecutor().insert_character("\n", surface)
        assert surface.commands == [(CMD_INSERT_PARAGRAPH, None), (CMD_INSERT_LINE_BREAK, None)]

    def test_newline_never_goes_through_the_clipboard(self, clipboard):
        surface = FakeSurface()
        InsertionExecutor(clipboard=clipboard).insert_character("\n", surface)
        assert clipboard.writes == []
        assert surface.focused.events[0].key == "Enter"
        assert surface.focused.events[0].char_code == 0


class TestMultiMethod:
    def test_every_mechanism_is_attempted(self, clipboard):
        surface = FakeSurface({CMD_PASTE: True})
        outcome = InsertionExecutor(clipboard=clipboard).insert_character("m", surface, MULTI)
        assert outcome.mechanism_used is Mechanism.EDIT_COMMAND
        assert [a.split(":")[0] for a in outcome.attempts] == [
            "edit_command",
            "clipboard",
            "key_events",
            "input_event",
        ]
        assert clipboard.writes == ["m"]
        assert isinstance(surface.focused.events[-1], InputEvent)
        assert surface.focused.events[-1].data == "m"


class TestDispatchTarget:
    def test_prefers_inner_body(self):
        surface = FakeSurface(inner=True)
        assert pick_dispatch_target(surface) is surface.inner

    def test_then_focus_target(self):
        surface = FakeSurface()
        assert pick_dispatch_target(surface) is surface.focused

    def test_then_document(self):
        surface = FakeSurface(focused=False)
        assert pick_dispatch_target(surface) is surface.doc

    def test_key_events_go_to_exactly_one_target(self):
        surface = FakeSurface({CMD_INSERT_TEXT: False}, inner=True)
        InsertionExecutor().insert_character("k", surface)
        assert len(surface.inner.events) == 3
        assert surface.focused.events == []
        assert surface.doc.events == []


class TestKeyEventFields:
    @pytest.mark.parametrize(
        "ch, expected",
        [
            ("a", ("a", "KeyA", 65, 97)),
            ("Z", ("Z", "KeyZ", 90, 90)),
            ("7", ("7", "Digit7", 55, 55)),
            ("!", ("!", "Digit1", 49, 33)),
            (" ", (" ", "Space", 32, 32)),
            ("\n", ("Enter", "Enter", 13, 0)),
            (",", (",", "Comma", 44, 44)),
        ],
    )
    def test_fields(self, ch, expected):
        assert key_event_fields(ch) == expected


class TestToggleFormat:
    def test_sends_ctrl_shortcut_then_settles(self, surface):
        sleeps = []
        executor = InsertionExecutor(sleep=sleeps.append, format_settle_s=0.05)
        executor.toggle_format(FormatKind.ITALIC, surface)
        assert surface.focused.events == [KeyEvent("keydown", "i", "KeyI", 73, 0, ctrl=True)]
        assert sleeps == [0.05]
        assert surface.commands == []

    def test_failed_toggle_is_swallowed(self):
        surface = FakeSurface()
        surface.focused.fail = True
        sleeps = []
        InsertionExecutor(sleep=sleeps.append).toggle_format(FormatKind.BOLD, surface)
        assert sleeps == []
