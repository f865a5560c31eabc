"""
settings.py - Default configuration and run settings for FlowTyper.
"""

from dataclasses import dataclass

# Typing speed
DEFAULT_WPM = 60
MIN_WPM = 10
MAX_WPM = 200
CHARS_PER_WORD = 5  # a "word" is modelled as 5 characters

# Pacing
MIN_DELAY_MS = 50  # floor for every inter-instruction delay
VARIATION_MIN = 0.7  # natural-variation jitter range (multiplicative)
VARIATION_MAX = 1.3

# Settle delays
DEFAULT_FOCUS_SETTLE_MS = 100  # after focusing the surface, before the first character
DEFAULT_FORMAT_SETTLE_MS = 50  # after each format toggle

DEFAULT_COUNTDOWN = 3  # seconds the CLI waits before typing begins

# Status labels
STATUS_IDLE = "Idle"
STATUS_RUNNING = "Typing"
STATUS_PAUSED = "Paused"
STATUS_COMPLETED = "Done"
STATUS_ERRORED = "Error"


class SettingsError(ValueError):
    """Raised when a start payload is out of range."""


@dataclass(frozen=True)
class TypingSettings:
    """Payload of the start command."""

    text: str
    wpm: int = DEFAULT_WPM
    preserve_formatting: bool = True
    natural_variations: bool = False
    single_method: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise SettingsError("text must be a string")
        if isinstance(self.wpm, bool) or not isinstance(self.wpm, int):
            raise SettingsError(f"wpm must be an integer, got {self.wpm!r}")
        if not MIN_WPM <= self.wpm <= MAX_WPM:
            raise SettingsError(
                f"wpm must be between {MIN_WPM} and {MAX_WPM}, got {self.wpm}"
            )


@dataclass(frozen=True)
class EngineTiming:
    """Settle delays used around focus and formatting."""

    focus_settle_ms: int = DEFAULT_FOCUS_SETTLE_MS
    format_settle_ms: int = DEFAULT_FORMAT_SETTLE_MS
