"""
typing_engine.py - Background typing run with pause / resume / stop.

A run replays an instruction stream one instruction per tick. The ``Pacer``
is the state machine: it owns the run, executes the instruction under the
cursor and computes the delay to the next tick. ``TypingEngine`` is the
command surface: it builds runs, acquires the target surface and drives a
pacer from a worker thread. The next tick is scheduled only after the
current one finishes, so no two instructions are ever in flight.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from events import EngineListener, Progress, notify
from insertion import InsertionExecutor, InsertionPolicy
from instructions import (
    CharacterInsert,
    FormatToggle,
    InstructionStream,
    build_stream,
    prepare_text,
)
from settings import (
    CHARS_PER_WORD,
    MIN_DELAY_MS,
    STATUS_COMPLETED,
    STATUS_ERRORED,
    STATUS_IDLE,
    STATUS_PAUSED,
    STATUS_RUNNING,
    VARIATION_MAX,
    VARIATION_MIN,
    EngineTiming,
    TypingSettings,
)
from surface import ClipboardProvider, SurfaceLocator, SurfaceNotFoundError, TargetSurface

logger = logging.getLogger(__name__)

# How long stop() waits for the worker thread to wind down (seconds).
_JOIN_TIMEOUT = 2.0


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERRORED = "errored"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    RunState.IDLE: STATUS_IDLE,
    RunState.RUNNING: STATUS_RUNNING,
    RunState.PAUSED: STATUS_PAUSED,
    RunState.COMPLETED: STATUS_COMPLETED,
    RunState.ERRORED: STATUS_ERRORED,
}

# Legal transitions; anything else is ignored.
_TRANSITIONS = {
    RunState.IDLE: {RunState.RUNNING, RunState.ERRORED},
    RunState.RUNNING: {RunState.PAUSED, RunState.COMPLETED, RunState.ERRORED, RunState.IDLE},
    RunState.PAUSED: {RunState.RUNNING, RunState.ERRORED, RunState.IDLE},
    RunState.COMPLETED: set(),
    RunState.ERRORED: set(),
}


@dataclass
class Run:
    """One playback session over an instruction stream."""

    stream: InstructionStream
    wpm: int
    natural_variation: bool = False
    cursor: int = 0
    state: RunState = RunState.IDLE
    missed: int = 0  # characters no mechanism confirmed
    error: Optional[str] = field(default=None, compare=False)

    @property
    def total(self) -> int:
        return len(self.stream)

    @property
    def active(self) -> bool:
        return self.state in (RunState.RUNNING, RunState.PAUSED)


def calculate_delay(
    wpm: int, natural_variation: bool = False, rng: Optional[random.Random] = None
) -> float:
    """Milliseconds to wait before the next instruction."""
    delay_ms = 60000 / (wpm * CHARS_PER_WORD)
    if natural_variation:
        delay_ms *= (rng or random).uniform(VARIATION_MIN, VARIATION_MAX)
    return max(float(MIN_DELAY_MS), delay_ms)


class CancelToken:
    """Pause / cancel signal shared between the command surface and a worker."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._cancelled = False
        self._paused = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def paused(self) -> bool:
        return self._paused

    def cancel(self) -> None:
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    def pause(self) -> None:
        with self._cond:
            self._paused = True
            self._cond.notify_all()

    def resume(self) -> None:
        with self._cond:
            self._paused = False
            self._cond.notify_all()

    def sleep(self, seconds: float) -> bool:
        """Sleep unless cancelled. True if the whole delay elapsed."""
        return self._wait(seconds, wake_on_pause=False)

    def wait_tick(self, seconds: float) -> bool:
        """Wait for the next tick; pausing or cancelling wakes early."""
        return self._wait(seconds, wake_on_pause=True)

    def wait_for_resume(self) -> bool:
        """Block while paused. False if cancelled meanwhile."""
        with self._cond:
            while self._paused and not self._cancelled:
                self._cond.wait()
            return not self._cancelled

    def _wait(self, seconds: float, wake_on_pause: bool) -> bool:
        deadline = time.monotonic() + max(0.0, seconds)
        with self._cond:
            while not (self._cancelled or (wake_on_pause and self._paused)):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return True
                self._cond.wait(remaining)
            return False


class Pacer:
    """State machine advancing a run one instruction per tick."""

    def __init__(
        self,
        run: Run,
        executor: InsertionExecutor,
        token: CancelToken,
        policy: InsertionPolicy = InsertionPolicy(),
        listener: Optional[EngineListener] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.run = run
        self.executor = executor
        self.token = token
        self.policy = policy
        self.listener = listener or EngineListener()
        self.rng = rng
        self.surface: Optional[TargetSurface] = None
        self._lock = threading.RLock()

    def acquire(self, locator: SurfaceLocator) -> bool:
        """Find and focus the target surface, then start running."""
        try:
            surface = locator()
            if surface is None:
                raise SurfaceNotFoundError("Could not find an editable target surface")
            surface.focus()
        except Exception as exc:
            logger.error("Target surface acquisition failed: %s", exc)
            self.fail(str(exc) or type(exc).__name__)
            return False

        with self._lock:
            self.surface = surface
            return self._set_state(RunState.RUNNING)

    def tick(self) -> Optional[float]:
        """Execute the instruction under the cursor.

        Returns the delay in milliseconds before the next tick, or None when
        nothing should be scheduled (paused, stopped, completed or failed).
        """
        with self._lock:
            run = self.run
            if run.state is not RunState.RUNNING or self.token.cancelled:
                return None

            if run.cursor >= len(run.stream):
                self._set_state(RunState.COMPLETED)
                logger.info(
                    "Run completed (%d instructions, %d characters not confirmed)",
                    len(run.stream),
                    run.missed,
                )
                notify(self.listener, "on_completed")
                return None

            instruction = run.stream[run.cursor]
            if isinstance(instruction, FormatToggle):
                self.executor.toggle_format(instruction.kind, self.surface)
            elif isinstance(instruction, CharacterInsert):
                outcome = self.executor.insert_character(
                    instruction.char, self.surface, self.policy
                )
                if not outcome.succeeded:
                    run.missed += 1
                    logger.info(
                        "Character %r at %d not confirmed (%s)",
                        instruction.char,
                        run.cursor,
                        "; ".join(outcome.attempts),
                    )

            run.cursor += 1
            notify(self.listener, "on_progress", Progress.at(run.cursor, len(run.stream)))

            if run.state is not RunState.RUNNING:
                return None
            return calculate_delay(run.wpm, run.natural_variation, self.rng)

    def pause(self) -> bool:
        with self._lock:
            if self.run.state is not RunState.RUNNING:
                return False
            self.token.pause()
            return self._set_state(RunState.PAUSED)

    def resume(self) -> bool:
        with self._lock:
            if self.run.state is not RunState.PAUSED:
                return False
            self._set_state(RunState.RUNNING)
            self.token.resume()
            return True

    def stop(self) -> bool:
        # Cancel first so a settle delay inside tick() returns promptly.
        self.token.cancel()
        with self._lock:
            return self._set_state(RunState.IDLE)

    def fail(self, message: str) -> None:
        self.token.cancel()
        with self._lock:
            self.run.error = message
            if self._set_state(RunState.ERRORED):
                notify(self.listener, "on_error", message)

    def _set_state(self, new: RunState) -> bool:
        old = self.run.state
        if new not in _TRANSITIONS[old]:
            logger.debug("Ignoring transition %s -> %s", old.value, new.value)
            return False
        self.run.state = new
        logger.debug("Run %s -> %s at %d/%d", old.value, new.value, self.run.cursor, self.run.total)
        notify(self.listener, "on_state_changed", old, new)
        return True


class TypingEngine:
    """start / pause / resume / stop command surface for one run at a time."""

    def __init__(
        self,
        locator: SurfaceLocator,
        clipboard: Optional[ClipboardProvider] = None,
        listener: Optional[EngineListener] = None,
        timing: Optional[EngineTiming] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.locator = locator
        self.clipboard = clipboard
        self.listener = listener or EngineListener()
        self.timing = timing or EngineTiming()
        self.rng = rng

        self.last_run: Optional[Run] = None
        self._pacer: Optional[Pacer] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.RLock()

    @property
    def run(self) -> Optional[Run]:
        """The active run, if any."""
        pacer = self._pacer
        if pacer is not None and pacer.run.active:
            return pacer.run
        return None

    @property
    def state(self) -> RunState:
        run = self.run
        return run.state if run is not None else RunState.IDLE

    def start(self, settings: TypingSettings) -> Optional[Run]:
        """Begin a new run, stopping the active one first.

        Returns the new run (Errored if no surface could be acquired), or
        None when the text normalizes to nothing.
        """
        with self._lock:
            if self.run is not None:
                logger.info("Stopping the active run before starting a new one")
                self.stop()

            text, events = prepare_text(settings.text, settings.preserve_formatting)
            if not text:
                notify(self.listener, "on_error", "Nothing to type")
                return None

            run = Run(
                stream=build_stream(text, events),
                wpm=settings.wpm,
                natural_variation=settings.natural_variations,
            )
            token = CancelToken()
            executor = InsertionExecutor(
                clipboard=self.clipboard,
                sleep=token.sleep,
                format_settle_s=self.timing.format_settle_ms / 1000.0,
            )
            pacer = Pacer(
                run,
                executor,
                token,
                policy=InsertionPolicy(single_method=settings.single_method),
                listener=self.listener,
                rng=self.rng,
            )
            self.last_run = run

            if not pacer.acquire(self.locator):
                return run

            logger.info(
                "Run started: %d characters, %d instructions at %d WPM",
                run.stream.character_count,
                len(run.stream),
                run.wpm,
            )
            self._pacer = pacer
            self._thread = threading.Thread(
                target=self._worker, args=(pacer,), name="flow-typer", daemon=True
            )
            self._thread.start()
            return run

    def pause(self) -> bool:
        pacer = self._pacer
        return pacer.pause() if pacer is not None else False

    def resume(self) -> bool:
        pacer = self._pacer
        return pacer.resume() if pacer is not None else False

    def toggle_pause(self) -> bool:
        """Pause when running, resume when paused."""
        if self.state is RunState.PAUSED:
            return self.resume()
        return self.pause()

    def stop(self) -> None:
        """Tear down the active run, if any. Always reports ``stopped``."""
        with self._lock:
            pacer, thread = self._pacer, self._thread
            self._pacer = None

        if pacer is not None:
            pacer.stop()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("Typing worker did not stop within %.1fs", _JOIN_TIMEOUT)
        notify(self.listener, "on_stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker finishes. False on timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _worker(self, pacer: Pacer) -> None:
        token = pacer.token
        try:
            # Let the host surface take focus before the first instruction.
            token.wait_tick(self.timing.focus_settle_ms / 1000.0)
            while not token.cancelled:
                delay_ms = pacer.tick()
                if delay_ms is not None:
                    token.wait_tick(delay_ms / 1000.0)
                    continue
                # A resume may land between tick() and this read; only a
                # state with no way back to RUNNING ends the loop.
                state = pacer.run.state
                if state is RunState.PAUSED:
                    token.wait_for_resume()
                elif state is not RunState.RUNNING:
                    break
        except Exception as exc:
            logger.exception("Typing worker failed")
            pacer.fail(f"Error: {exc}")
