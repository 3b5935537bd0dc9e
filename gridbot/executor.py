"""
Block executor: walks the program tree and drives the robot.

The executor is the only writer of robot pose, lit goals and interactive
state while a run is active. It works as a sequence of discrete steps:

1. Check the cancel token (before every block and every loop iteration)
2. Record the block path as "currently executing" and emit ``block_started``
3. Check the cancel token again (a listener may have cancelled)
4. Dispatch on block type (LOOP / IF_COLOR / COMMAND)
5. After each executed COMMAND, emit ``command_finished`` and await the pause hook
   unless the command failed
6. After every other block, and at the head of every loop iteration, await the
   checkpoint hook (a bare yield)

Every executed block therefore suspends at least once, so ``cancel_run`` always
gets a chance to land, even inside loops that never move the robot. Pacing is
supplied by the caller (see ``GameSession``); the executor never sleeps on its own.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from .config import Config
from .environment import InteractiveStateStore, LevelGrid, delta, turn_left, turn_right
from .logging_utils import (
    log_error,
    log_skip,
    log_step,
    log_step_failure,
)
from .rules import DefaultMovementRules, MovementRules
from .schemas import (
    BlockType,
    Command,
    Position,
    ProgramBlock,
    Robot,
    StepEvent,
    StepEventKind,
)


StepListener = Callable[[StepEvent], None]
PauseHook = Callable[[], Awaitable[None]]

# Failure reasons surfaced to the caller after a failed MOVE/JUMP.
FAILURE_BLOCKED = "blocked"
FAILURE_JUMP_IMPOSSIBLE = "jump impossible"


class ExecutionResult(str, Enum):
    """Outcome of running a block sequence."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


class CancelToken:
    """Cooperative cancellation flag polled between steps."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False


async def _yield_only() -> None:
    await asyncio.sleep(0)


def _is_paced(block: ProgramBlock) -> bool:
    """True for blocks whose suspension is the pause hook (executed commands)."""
    return block.type == BlockType.COMMAND and block.command is not None


class BlockExecutor:
    """Recursive interpreter for ProgramBlock trees.

    Args:
        grid: Query service for the active level
        interactive: Interactive state store (mutated by triggers)
        robot: Robot pose, mutated in place
        lit_goals: Ordered, de-duplicated list of lit goal positions, mutated in place
        rules: Height physics for MOVE/JUMP (defaults to DefaultMovementRules)
        token: Cancel token polled before every block and loop iteration
        pause: Awaitable hook run after every successful command (defaults to a bare yield)
        checkpoint: Awaitable hook run after every non-command block and at the
            head of every loop iteration (defaults to a bare yield)
        listeners: Callables receiving a StepEvent per observable step
        max_loop_iterations: Clamp applied to LOOP iteration counts
        verbose: Print one line per step
    """

    def __init__(
        self,
        grid: LevelGrid,
        interactive: InteractiveStateStore,
        robot: Robot,
        lit_goals: List[Position],
        *,
        rules: Optional[MovementRules] = None,
        token: Optional[CancelToken] = None,
        pause: Optional[PauseHook] = None,
        checkpoint: Optional[PauseHook] = None,
        listeners: Optional[Sequence[StepListener]] = None,
        max_loop_iterations: Optional[int] = None,
        verbose: Optional[bool] = None,
    ):
        self.grid = grid
        self.interactive = interactive
        self.robot = robot
        self.lit_goals = lit_goals
        self.rules = rules or DefaultMovementRules()
        self.token = token or CancelToken()
        self.pause = pause or _yield_only
        self.checkpoint = checkpoint or _yield_only
        self.listeners = list(listeners or [])
        self.max_loop_iterations = (
            Config.MAX_LOOP_ITERATIONS if max_loop_iterations is None else max_loop_iterations
        )
        self.verbose = Config.step_logging_enabled() if verbose is None else verbose

        # Observability: where we are in the tree and what is executing right now.
        self.current_path: Tuple[int, ...] = ()
        self.active_command: Optional[str] = None
        self.last_failure: Optional[str] = None

    # ------------------------------------------------------------------
    # Tree walking
    # ------------------------------------------------------------------

    async def run_sequence(
        self, blocks: Sequence[ProgramBlock], path: Tuple[int, ...] = ()
    ) -> ExecutionResult:
        """Run ``blocks`` in order, stopping at the first failure or cancellation.

        ``path`` is the tree path of the enclosing container; each block's own
        path is ``path + (index,)``.
        """
        for index, block in enumerate(blocks):
            if self.token.cancelled:
                return ExecutionResult.CANCELLED

            block_path = path + (index,)
            self.current_path = block_path
            self._emit(StepEventKind.BLOCK_STARTED, block_path, block)
            if self.token.cancelled:
                return ExecutionResult.CANCELLED

            result = await self._run_block(block, block_path)
            if result is not ExecutionResult.SUCCESS:
                return result
            if not _is_paced(block):
                await self.checkpoint()

        return ExecutionResult.SUCCESS

    async def _run_block(self, block: ProgramBlock, path: Tuple[int, ...]) -> ExecutionResult:
        if block.type == BlockType.LOOP:
            return await self._run_loop(block, path)
        if block.type == BlockType.IF_COLOR:
            return await self._run_if_color(block, path)
        return await self._run_command_block(block, path)

    async def _run_loop(self, block: ProgramBlock, path: Tuple[int, ...]) -> ExecutionResult:
        iterations = block.iterations
        if iterations is None or iterations < 1 or not block.children:
            self._warn_skip(block, path, "loop without iterations or children")
            return ExecutionResult.SUCCESS

        if iterations > self.max_loop_iterations:
            log_skip(
                f"Loop asks for {iterations} iterations; clamped to {self.max_loop_iterations}",
                path,
            )
            iterations = self.max_loop_iterations

        for _ in range(iterations):
            await self.checkpoint()
            if self.token.cancelled:
                return ExecutionResult.CANCELLED
            result = await self.run_sequence(block.children, path)
            if result is not ExecutionResult.SUCCESS:
                return result

        return ExecutionResult.SUCCESS

    async def _run_if_color(self, block: ProgramBlock, path: Tuple[int, ...]) -> ExecutionResult:
        if block.condition_color is None or not block.children:
            self._warn_skip(block, path, "condition without colour or children")
            return ExecutionResult.SUCCESS

        tile = self.grid.tile_at(self.robot.x, self.robot.y)
        if tile is None or tile.color != block.condition_color:
            # No match is not a failure; the children are simply skipped.
            return ExecutionResult.SUCCESS

        return await self.run_sequence(block.children, path)

    async def _run_command_block(
        self, block: ProgramBlock, path: Tuple[int, ...]
    ) -> ExecutionResult:
        if block.command is None:
            self._warn_skip(block, path, "command block without a command")
            return ExecutionResult.SUCCESS

        self.active_command = block.command
        success = self.run_command(block.command)
        self._emit(StepEventKind.COMMAND_FINISHED, path, block, success=success)
        self.active_command = None

        if not success:
            return ExecutionResult.FAILURE

        await self.pause()
        return ExecutionResult.SUCCESS

    # ------------------------------------------------------------------
    # Single commands
    # ------------------------------------------------------------------

    def run_command(self, command: Command | str) -> bool:
        """Execute one primitive command against the current state.

        Returns False only for a blocked MOVE or an impossible JUMP; the reason
        is left in ``last_failure``. Unknown commands succeed without effect.
        """
        if command == Command.MOVE:
            return self._step(jump=False)

        if command == Command.JUMP:
            return self._step(jump=True)

        if command == Command.TURN_L:
            previous = self.robot.dir
            self.robot.dir = turn_left(previous)
            self._log_step(f"Turn left {previous.value} -> {self.robot.dir.value}")
            return True

        if command == Command.TURN_R:
            previous = self.robot.dir
            self.robot.dir = turn_right(previous)
            self._log_step(f"Turn right {previous.value} -> {self.robot.dir.value}")
            return True

        if command == Command.LIGHT:
            self._light()
            return True

        return True

    def _step(self, *, jump: bool) -> bool:
        dx, dy = delta(self.robot.dir)
        origin = self.robot.position
        target = Position(x=origin.x + dx, y=origin.y + dy)
        verb = "Jump" if jump else "Move"

        if not self.grid.is_walkable(target.x, target.y):
            self.last_failure = FAILURE_BLOCKED
            self._log_failure(f"{verb} to ({target.x}, {target.y}) blocked")
            return False

        current_height = self.grid.height_at(origin.x, origin.y)
        target_height = self.grid.height_at(target.x, target.y)
        if jump:
            allowed = self.rules.can_jump(current_height, target_height)
            reason = FAILURE_JUMP_IMPOSSIBLE
        else:
            allowed = self.rules.can_move(current_height, target_height)
            reason = FAILURE_BLOCKED

        if not allowed:
            self.last_failure = reason
            self._log_failure(
                f"{verb} to ({target.x}, {target.y}) refused: height {current_height} -> {target_height}"
            )
            return False

        self.robot.x, self.robot.y = target.x, target.y

        # Enter fires before leave so a teleport landing is not undone by the
        # origin's leave trigger.
        destination = self.interactive.handle_enter(target)
        if destination is not None:
            self.robot.x, self.robot.y = destination.x, destination.y
            self._log_step(f"Teleported ({target.x}, {target.y}) -> ({destination.x}, {destination.y})")
        self.interactive.handle_leave(origin)

        self._log_step(f"{verb} ({origin.x}, {origin.y}) -> ({self.robot.x}, {self.robot.y})")
        return True

    def _light(self) -> None:
        position = self.robot.position
        if not self.grid.is_goal(position.x, position.y):
            self._log_step(f"Light at ({position.x}, {position.y}): not a goal")
            return
        if position in self.lit_goals:
            return
        self.lit_goals.append(position)
        self._log_step(f"Light at ({position.x}, {position.y}): goal lit")

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def _emit(
        self,
        kind: StepEventKind,
        path: Tuple[int, ...],
        block: ProgramBlock,
        *,
        success: Optional[bool] = None,
    ) -> None:
        if not self.listeners:
            return

        event = StepEvent(
            kind=kind,
            path=path,
            block_id=block.id,
            command=block.command if block.type == BlockType.COMMAND else None,
            success=success,
            robot=self.robot.model_copy(),
            lit_goals=list(self.lit_goals),
            interactive_state=self.interactive.snapshot(),
        )
        # Listener failures are logged but never stop the run.
        for listener in self.listeners:
            try:
                listener(event)
            except Exception as exc:
                log_error(f"[Executor] Step listener failed: {exc}")

    def _warn_skip(self, block: ProgramBlock, path: Tuple[int, ...], reason: str) -> None:
        log_skip(f"Skipping {block.type.value} block {block.id}: {reason}", path)

    def _log_step(self, message: str) -> None:
        if self.verbose:
            log_step(message, self.current_path)

    def _log_failure(self, message: str) -> None:
        if self.verbose:
            log_step_failure(message, self.current_path)
