"""
Gridbot - program interpreter and grid simulation for a robot puzzle game.

A player builds a tree of command blocks; the executor drives a robot over a
tile grid (heights, doors, switches, teleporters, cracked tiles) and the
session decides WIN or FAIL once the program ends.

No global state. Levels, movement rules and step listeners are injected.
"""

__version__ = "0.1.0"

# Main entry point
from .session import GameSession, InvalidStatusTransitionError, STATUS_TRANSITIONS

# Execution
from .executor import BlockExecutor, CancelToken, ExecutionResult
from .rules import MovementRules, DefaultMovementRules

# Levels
from .levels import LevelLoader, LevelRepository

# Environment helpers
from .environment import (
    InteractiveStateStore,
    LevelGrid,
    delta,
    turn_left,
    turn_right,
    render_ascii_level,
)

# Core schemas
from .schemas import (
    BlockType,
    Command,
    Direction,
    Level,
    Position,
    ProgramBlock,
    Robot,
    RunOutcome,
    RunStatus,
    StartPose,
    StepEvent,
    StepEventKind,
    Tile,
    TileType,
)

__all__ = [
    # Main class
    "GameSession",
    "InvalidStatusTransitionError",
    "STATUS_TRANSITIONS",
    # Execution
    "BlockExecutor",
    "CancelToken",
    "ExecutionResult",
    "MovementRules",
    "DefaultMovementRules",
    # Levels
    "LevelLoader",
    "LevelRepository",
    # Environment helpers
    "InteractiveStateStore",
    "LevelGrid",
    "delta",
    "turn_left",
    "turn_right",
    "render_ascii_level",
    # Schemas
    "BlockType",
    "Command",
    "Direction",
    "Level",
    "Position",
    "ProgramBlock",
    "Robot",
    "RunOutcome",
    "RunStatus",
    "StartPose",
    "StepEvent",
    "StepEventKind",
    "Tile",
    "TileType",
]
