"""
Pydantic schemas for the Gridbot puzzle core.

All data structures shared by the grid, the executor and the session are
defined here.

Design Philosophy:
- Level data is read-only once loaded; per-attempt state lives on the session
- JSON field names from level files (targetId, gridSize, ...) are accepted as aliases
- Program blocks are permissive: malformed editor output is skipped at run time,
  not rejected at construction time
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Enumerations
# ============================================================================


class Direction(str, Enum):
    """Robot heading. Clockwise order is N, E, S, W."""

    N = "N"
    E = "E"
    S = "S"
    W = "W"


class Command(str, Enum):
    """Primitive commands a COMMAND block can carry."""

    MOVE = "MOVE"
    TURN_L = "TURN_L"
    TURN_R = "TURN_R"
    JUMP = "JUMP"
    LIGHT = "LIGHT"
    # Procedure slot from the editor palette. Not executable yet; runs as a no-op.
    P1 = "P1"


class BlockType(str, Enum):
    """Discriminator for ProgramBlock nodes."""

    COMMAND = "COMMAND"
    LOOP = "LOOP"
    IF_COLOR = "IF_COLOR"


class TileType(str, Enum):
    """Static tile kinds. Interactive kinds link to each other through ids."""

    GROUND = "ground"
    VOID = "void"
    SWITCH = "switch"
    DOOR = "door"
    TELEPORT = "teleport"
    CRACKED = "cracked"


class RunStatus(str, Enum):
    """Session status machine states."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    WIN = "WIN"
    FAIL = "FAIL"


class RunOutcome(str, Enum):
    """Result handed back to the caller of ``GameSession.run_program``.

    REJECTED means the run never entered RUNNING (empty program, no level,
    or another run already active).
    """

    WIN = "WIN"
    FAIL = "FAIL"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class StepEventKind(str, Enum):
    """Kinds of observability events emitted during a run."""

    BLOCK_STARTED = "block_started"
    COMMAND_FINISHED = "command_finished"
    RUN_FINISHED = "run_finished"


# ============================================================================
# Level Schemas
# ============================================================================


class Position(BaseModel):
    """Grid coordinate. y grows southward. Hashable so it can key sets."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)


class Tile(BaseModel):
    """Static descriptor of one grid cell."""

    model_config = ConfigDict(populate_by_name=True)

    x: int
    y: int
    type: TileType = TileType.GROUND
    height: int = Field(0, ge=0, description="Elevation used by MOVE/JUMP checks")
    color: Optional[str] = Field(None, description="Colour tested by IF_COLOR blocks")
    # Interactive linkage. A switch's target_id names a door/cracked id, a
    # teleport's target_id names the id of its destination tile.
    id: Optional[str] = Field(None, description="Identity for interactive tiles")
    target_id: Optional[str] = Field(None, alias="targetId")
    state: Optional[bool] = Field(
        None, description="Initial interactive state (door open / cracked safe)"
    )

    @property
    def position(self) -> Position:
        return Position(x=self.x, y=self.y)


class StartPose(BaseModel):
    """Robot pose at the start of every attempt."""

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    dir: Direction

    @property
    def position(self) -> Position:
        return Position(x=self.x, y=self.y)


class Level(BaseModel):
    """A validated, immutable puzzle definition.

    Invariants enforced at construction:
    - tile coordinates are unique and inside the grid_size x grid_size square
    - every goal lies on a tile of the layout
    - the start position is on a non-void tile
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    title: str = ""
    description: str = ""
    grid_size: int = Field(..., ge=1, alias="gridSize")
    layout: List[Tile] = Field(default_factory=list)
    start: StartPose
    goals: List[Position] = Field(default_factory=list)
    available_blocks: List[Union[Command, BlockType]] = Field(
        default_factory=list, alias="availableBlocks"
    )
    max_commands: int = Field(..., ge=1, alias="maxCommands")

    @model_validator(mode="after")
    def _check_layout(self) -> "Level":
        seen: Dict[Tuple[int, int], Tile] = {}
        for tile in self.layout:
            if not (0 <= tile.x < self.grid_size and 0 <= tile.y < self.grid_size):
                raise ValueError(
                    f"Tile at ({tile.x}, {tile.y}) lies outside the {self.grid_size}x{self.grid_size} grid"
                )
            key = (tile.x, tile.y)
            if key in seen:
                raise ValueError(f"Duplicate tile at ({tile.x}, {tile.y})")
            seen[key] = tile

        for goal in self.goals:
            if goal.as_tuple() not in seen:
                raise ValueError(f"Goal ({goal.x}, {goal.y}) is not on any tile")

        start_tile = seen.get((self.start.x, self.start.y))
        if start_tile is None or start_tile.type == TileType.VOID:
            raise ValueError(
                f"Start ({self.start.x}, {self.start.y}) must be on a walkable tile"
            )
        return self


# ============================================================================
# Program Schemas
# ============================================================================


def _new_block_id() -> str:
    return uuid4().hex[:7]


class ProgramBlock(BaseModel):
    """One node of the player's program tree.

    Only ``type`` is required. Editor-produced inconsistencies (a COMMAND with
    no command, a LOOP with no iterations) are representable on purpose; the
    executor treats them as no-ops.
    """

    model_config = ConfigDict(populate_by_name=True)

    # Stable identity for editing operations; irrelevant to execution.
    id: str = Field(default_factory=_new_block_id)
    type: BlockType
    command: Optional[str] = Field(
        None, description="Command name for COMMAND blocks (see Command)"
    )
    iterations: Optional[int] = Field(None, description="Repeat count for LOOP blocks")
    condition_color: Optional[str] = Field(None, alias="conditionColor")
    children: Optional[List[ProgramBlock]] = None

    @classmethod
    def cmd(cls, command: Union[Command, str]) -> "ProgramBlock":
        """Shorthand for a COMMAND block."""
        value = command.value if isinstance(command, Command) else command
        return cls(type=BlockType.COMMAND, command=value)

    @classmethod
    def loop(cls, iterations: int, children: List["ProgramBlock"]) -> "ProgramBlock":
        return cls(type=BlockType.LOOP, iterations=iterations, children=list(children))

    @classmethod
    def if_color(cls, color: str, children: List["ProgramBlock"]) -> "ProgramBlock":
        return cls(type=BlockType.IF_COLOR, condition_color=color, children=list(children))


ProgramBlock.model_rebuild()


# ============================================================================
# Runtime Schemas
# ============================================================================


class Robot(BaseModel):
    """Robot pose. Mutated only by the executor while a run is active."""

    x: int
    y: int
    dir: Direction

    @property
    def position(self) -> Position:
        return Position(x=self.x, y=self.y)

    @classmethod
    def from_start(cls, start: StartPose) -> "Robot":
        return cls(x=start.x, y=start.y, dir=start.dir)


class StepEvent(BaseModel):
    """Snapshot handed to step listeners.

    Carries everything a presentation layer needs to animate a step without
    re-deriving game state.
    """

    kind: StepEventKind
    # Indices into the program tree, e.g. (2, 0) is the first child of block 2.
    path: Tuple[int, ...] = ()
    block_id: Optional[str] = None
    command: Optional[str] = None
    success: Optional[bool] = None
    robot: Robot
    lit_goals: List[Position] = Field(default_factory=list)
    interactive_state: Dict[str, bool] = Field(default_factory=dict)
    outcome: Optional[RunOutcome] = None
