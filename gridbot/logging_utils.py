"""Logging utilities for Gridbot runs.

Colour-coded console lines for the two speakers in a run: the executor
(one line per step, prefixed with the block path) and the session (run
lifecycle and outcome). Text tags keep the output readable without colour.
"""

import os
from enum import Enum
from typing import Sequence

from .schemas import RunOutcome


class Color(Enum):
    """ANSI color codes for terminal output."""

    BLUE = "\033[94m"      # Executor steps
    YELLOW = "\033[93m"    # Skipped blocks, rejected or cancelled runs
    RED = "\033[91m"       # Blocked moves, failed runs
    GREEN = "\033[92m"     # Solved levels
    CYAN = "\033[96m"      # Level and run metadata

    BOLD = "\033[1m"
    RESET = "\033[0m"


# Markers for line kinds (color-blind accessible)
LOG_TAG_STEP = "[•]"
LOG_TAG_WARNING = "[?]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"

# Tag and colour used to announce each run outcome.
OUTCOME_STYLES = {
    RunOutcome.WIN: (LOG_TAG_SUCCESS, Color.GREEN),
    RunOutcome.FAIL: (LOG_TAG_ERROR, Color.RED),
    RunOutcome.CANCELLED: (LOG_TAG_WARNING, Color.YELLOW),
    RunOutcome.REJECTED: (LOG_TAG_WARNING, Color.YELLOW),
}


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes unless GRIDBOT_NO_COLOR is set."""
    if os.getenv("GRIDBOT_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def format_path(path: Sequence[int]) -> str:
    """Render a block path as ``0/2/1``; the program root is ``/``."""
    return "/".join(str(index) for index in path) or "/"


def format_step(tag: str, message: str, path: Sequence[int] = ()) -> str:
    """Format one executor line.

    >>> format_step("[•]", "Move (0, 0) -> (1, 0)", (0, 1))
    '  [•] [Executor 0/1] Move (0, 0) -> (1, 0)'
    """
    where = f"Executor {format_path(path)}" if path else "Executor"
    return f"  {tag} [{where}] {message}"


def log_step(message: str, path: Sequence[int] = ()) -> None:
    """Log an executed step (blue)."""
    print(colored(format_step(LOG_TAG_STEP, message, path), Color.BLUE))


def log_step_failure(message: str, path: Sequence[int] = ()) -> None:
    """Log a refused move or jump (red)."""
    print(colored(format_step(LOG_TAG_ERROR, message, path), Color.RED))


def log_skip(message: str, path: Sequence[int] = ()) -> None:
    """Log a skipped or clamped block (yellow)."""
    print(colored(format_step(LOG_TAG_WARNING, message, path), Color.YELLOW))


def log_info(message: str) -> None:
    """Log level and run metadata (cyan)."""
    print(colored(f"{LOG_TAG_INFO} {message}", Color.CYAN))


def log_error(message: str) -> None:
    """Log an error that does not stop the run, such as a failing listener (red)."""
    print(colored(f"{LOG_TAG_ERROR} {message}", Color.RED))


def log_outcome(outcome: RunOutcome, message: str) -> None:
    """Log how a run ended, styled by its outcome. WIN is printed bold."""
    tag, color = OUTCOME_STYLES[outcome]
    print(colored(f"{tag} {message}", color, bold=outcome is RunOutcome.WIN))
