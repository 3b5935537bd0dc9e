"""
Gridbot Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Config:
    """Application configuration loaded from environment variables."""

    # Execution pacing (milliseconds paused after each executed command)
    EXECUTION_SPEED_MS: int = int(os.getenv("GRIDBOT_EXECUTION_SPEED_MS", "500"))

    # Upper bound applied to LOOP iteration counts. Every iteration of every
    # nested loop costs one suspension, so this is the only throttle on runaway programs.
    MAX_LOOP_ITERATIONS: int = int(os.getenv("GRIDBOT_MAX_LOOP_ITERATIONS", "100"))

    # Largest height difference a JUMP can cover
    MAX_JUMP_HEIGHT: int = int(os.getenv("GRIDBOT_MAX_JUMP_HEIGHT", "1"))

    # Logging. LOG_LEVEL=DEBUG turns per-step executor output on, like GRIDBOT_VERBOSE.
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    VERBOSE: bool = os.getenv("GRIDBOT_VERBOSE", "").lower() in ("1", "true", "yes")

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    LEVELS_PATH: Path = Path(
        os.getenv("GRIDBOT_LEVELS_PATH", str(PROJECT_ROOT / "examples" / "levels.json"))
    )

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are out of range."""
        if cls.EXECUTION_SPEED_MS < 0:
            raise ValueError(
                "GRIDBOT_EXECUTION_SPEED_MS must be >= 0 "
                f"(got {cls.EXECUTION_SPEED_MS}). Use 0 to run without pauses."
            )

        if cls.MAX_LOOP_ITERATIONS < 1:
            raise ValueError(
                "GRIDBOT_MAX_LOOP_ITERATIONS must be >= 1 "
                f"(got {cls.MAX_LOOP_ITERATIONS})"
            )

        if cls.MAX_JUMP_HEIGHT < 0:
            raise ValueError(
                f"GRIDBOT_MAX_JUMP_HEIGHT must be >= 0 (got {cls.MAX_JUMP_HEIGHT})"
            )

        if cls.LOG_LEVEL not in LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)} (got {cls.LOG_LEVEL!r})"
            )

    @classmethod
    def step_logging_enabled(cls) -> bool:
        """Default verbosity for executors and sessions that do not set it explicitly."""
        return cls.VERBOSE or cls.LOG_LEVEL == "DEBUG"

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Gridbot Configuration:",
            f"  Execution Speed: {cls.EXECUTION_SPEED_MS}ms",
            f"  Loop Iteration Cap: {cls.MAX_LOOP_ITERATIONS}",
            f"  Max Jump Height: {cls.MAX_JUMP_HEIGHT}",
            f"  Levels: {cls.LEVELS_PATH}",
            f"  Log Level: {cls.LOG_LEVEL}",
            f"  Verbose: {cls.VERBOSE}",
        ]
        return "\n".join(lines)
