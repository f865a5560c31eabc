"""
main.py - Command-line entry point for FlowTyper.

Run with:  python main.py notes.md --wpm 80
Click into the target editor during the countdown. F7 pauses / resumes,
Esc stops.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from typing import Optional

from pynput import keyboard

from desktop_surface import locate_desktop_surface
from events import EngineListener, Progress
from settings import (
    DEFAULT_COUNTDOWN,
    DEFAULT_WPM,
    MAX_WPM,
    MIN_WPM,
    SettingsError,
    TypingSettings,
)
from surface import system_clipboard
from typing_engine import RunState, TypingEngine


class ConsoleListener(EngineListener):
    """Prints progress on one line and lifecycle events below it."""

    def on_progress(self, progress: Progress) -> None:
        sys.stdout.write(
            f"\r{progress.percentage:5.1f}% complete "
            f"({progress.current}/{progress.total} characters)"
        )
        sys.stdout.flush()

    def on_state_changed(self, old: RunState, new: RunState) -> None:
        if new is RunState.PAUSED:
            print(f"\n{new.label} - press F7 to resume")
        elif old is RunState.PAUSED and new is RunState.RUNNING:
            print(new.label)

    def on_completed(self) -> None:
        print("\nFlow completed successfully!")

    def on_stopped(self) -> None:
        print("\nFlow stopped")

    def on_error(self, message: str) -> None:
        print(f"\nError: {message}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="flow-typer",
        description="Type a document into the focused editor at a human pace.",
    )
    source = p.add_mutually_exclusive_group()
    source.add_argument("file", nargs="?", help="text file to type ('-' for stdin)")
    source.add_argument("--text", help="text to type")
    source.add_argument("--clipboard", action="store_true", help="type the clipboard contents")
    p.add_argument("--wpm", type=int, default=DEFAULT_WPM, help=f"words per minute ({MIN_WPM}-{MAX_WPM})")
    p.add_argument("--no-formatting", action="store_true", help="type **bold**/*italic*/~~underline~~ markers literally")
    p.add_argument("--natural", action="store_true", help="vary the delay between characters by +/-30%%")
    p.add_argument("--multi-method", action="store_true", help="run every insertion mechanism for each character")
    p.add_argument("--countdown", type=int, default=DEFAULT_COUNTDOWN, help="seconds to wait before typing")
    p.add_argument("--click", nargs=2, type=int, metavar=("X", "Y"), help="click here to focus the editor first")
    p.add_argument("-v", "--verbose", action="store_true", help="log every insertion attempt")
    return p


def read_source_text(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    if args.clipboard:
        clipboard = system_clipboard()
        if clipboard is None:
            raise SystemExit("No clipboard is available on this system.")
        return clipboard.read_text()
    if args.file and args.file != "-":
        with open(args.file, encoding="utf-8") as fh:
            return fh.read()
    return sys.stdin.read()


def _countdown(seconds: int, stop_requested: threading.Event) -> bool:
    """Count down to typing. False if Esc was pressed meanwhile."""
    for remaining in range(seconds, 0, -1):
        print(f"Starting in {remaining}...", flush=True)
        if stop_requested.wait(1):
            return False
    return not stop_requested.is_set()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = TypingSettings(
            text=read_source_text(args),
            wpm=args.wpm,
            preserve_formatting=not args.no_formatting,
            natural_variations=args.natural,
            single_method=not args.multi_method,
        )
    except SettingsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    click_point = tuple(args.click) if args.click else None
    engine = TypingEngine(
        locator=lambda: locate_desktop_surface(click_point),
        clipboard=system_clipboard(),
        listener=ConsoleListener(),
    )

    # ── Global hotkeys (work even when this terminal is not focused) ──
    def _on_f7():
        engine.toggle_pause()

    stop_requested = threading.Event()

    def _on_esc():
        stop_requested.set()
        engine.stop()

    hotkeys = keyboard.GlobalHotKeys({"<f7>": _on_f7, "<esc>": _on_esc})
    hotkeys.daemon = True
    hotkeys.start()

    try:
        if not _countdown(max(0, args.countdown), stop_requested):
            return 1
        run = engine.start(settings)
        if run is None or run.state is RunState.ERRORED:
            return 1
        while not engine.wait(timeout=0.5):
            pass
    except KeyboardInterrupt:
        engine.stop()
    finally:
        hotkeys.stop()

    finished = engine.last_run
    return 0 if finished is not None and finished.state is RunState.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
