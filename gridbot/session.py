"""
Game session: the explicit owner of all per-attempt state.

A session replaces a process-wide game store. It holds:
- the active level (read-only) and the player's program (survives resets)
- robot pose, lit goals, interactive state and run status (reset per attempt)

Run lifecycle:
1. ``run_program`` rejects when a run is active, no level is loaded or the program is empty
2. Reposition to the start pose, clear lit goals, rebuild interactive state
3. IDLE -> RUNNING, then hand the program to a fresh BlockExecutor
4. RUNNING -> WIN if every goal is lit, otherwise RUNNING -> FAIL
5. Cancellation returns CANCELLED and fully resets the session (status IDLE)
"""

import asyncio
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .config import Config
from .environment import InteractiveStateStore, LevelGrid, render_ascii_level
from .executor import BlockExecutor, CancelToken, ExecutionResult, StepListener
from .levels import LevelRepository
from .logging_utils import log_error, log_info, log_outcome
from .rules import MovementRules
from .schemas import (
    BlockType,
    Command,
    Level,
    Position,
    ProgramBlock,
    Robot,
    RunOutcome,
    RunStatus,
    StepEvent,
    StepEventKind,
)


# =============================
# Module-level Exceptions
# =============================

class InvalidStatusTransitionError(Exception):
    """Raised when code tries to move the status machine along an illegal edge.

    The public session API never triggers this; seeing it means a caller wrote
    to the status directly or a new code path skipped the run preconditions.
    """

    def __init__(self, *, current: RunStatus, requested: RunStatus) -> None:
        self.current = current
        self.requested = requested
        message = (
            f"Illegal run status transition {current.value} -> {requested.value}.\n\n"
            "Remediation tips:\n"
            "  - Start runs through GameSession.run_program, not by setting status\n"
            "  - Use reset_to_start() to return to IDLE from WIN or FAIL"
        )
        super().__init__(message)


# Allowed edges of the status machine. Any state may return to IDLE via reset.
STATUS_TRANSITIONS: Dict[RunStatus, FrozenSet[RunStatus]] = {
    RunStatus.IDLE: frozenset({RunStatus.IDLE, RunStatus.RUNNING}),
    RunStatus.RUNNING: frozenset({RunStatus.IDLE, RunStatus.WIN, RunStatus.FAIL}),
    RunStatus.WIN: frozenset({RunStatus.IDLE}),
    RunStatus.FAIL: frozenset({RunStatus.IDLE}),
}

# Defaults applied by add_block for container blocks.
DEFAULT_LOOP_ITERATIONS = 2
DEFAULT_CONDITION_COLOR = "red"


class GameSession:
    """
    One player's game: level, program, and the state of the current attempt.

    All collaborators are injected; nothing is global.
    """

    def __init__(
        self,
        repository: LevelRepository,
        *,
        rules: Optional[MovementRules] = None,
        step_delay_ms: Optional[int] = None,
        max_loop_iterations: Optional[int] = None,
        step_listeners: Optional[List[StepListener]] = None,
        verbose: Optional[bool] = None,
    ):
        """Initialize a session with no level loaded.

        Args:
            repository: Source of validated levels
            rules: Optional MovementRules (defaults to DefaultMovementRules)
            step_delay_ms: Pause after each executed command; defaults to
                Config.EXECUTION_SPEED_MS. 0 still yields to the event loop.
            max_loop_iterations: LOOP clamp; defaults to Config.MAX_LOOP_ITERATIONS
            step_listeners: Optional callables receiving a StepEvent per step.
                Listener failures are logged and ignored.
            verbose: Print one line per executed step
        """
        self.repository = repository
        self.rules = rules
        self.step_delay_ms = Config.EXECUTION_SPEED_MS if step_delay_ms is None else step_delay_ms
        self.max_loop_iterations = max_loop_iterations
        self.step_listeners: List[StepListener] = list(step_listeners or [])
        self.verbose = Config.step_logging_enabled() if verbose is None else verbose

        self.current_level_id: Optional[int] = None
        self.program: List[ProgramBlock] = []

        self.interactive = InteractiveStateStore()
        self.grid = LevelGrid(None, self.interactive)
        self.robot: Optional[Robot] = None
        self.lit_goals: List[Position] = []
        self.status: RunStatus = RunStatus.IDLE

        # Observability mirrors of the active executor
        self.current_path: Tuple[int, ...] = ()
        self.active_action: Optional[str] = None
        self.failure_reason: Optional[str] = None

        self._token = CancelToken()
        self._running = False

    # =============================
    # Level lifecycle
    # =============================

    @property
    def current_level(self) -> Optional[Level]:
        if self.current_level_id is None:
            return None
        return self.repository.get(self.current_level_id)

    @property
    def has_next_level(self) -> bool:
        if self.current_level_id is None:
            return False
        return self.repository.next_id(self.current_level_id) is not None

    def load_level(self, level_id: int) -> bool:
        """Make ``level_id`` active. Clears the program and all attempt state.

        Returns False (and changes nothing) when the id is unknown or a run is active.
        """
        if self._running:
            return False
        level = self.repository.get(level_id)
        if level is None:
            return False

        self.current_level_id = level_id
        self.grid = LevelGrid(level, self.interactive)
        self.program = []
        self._set_status(RunStatus.IDLE)
        self._reset_attempt(level)
        log_info(f"Loaded level {level.id}: {level.title}")
        return True

    def next_level(self) -> bool:
        if self.current_level_id is None:
            return False
        next_id = self.repository.next_id(self.current_level_id)
        if next_id is None:
            return False
        return self.load_level(next_id)

    # =============================
    # Program editing
    # =============================

    @property
    def program_length(self) -> int:
        """Total number of blocks in the program, nested blocks included."""
        return _count_blocks(self.program)

    def add_block(
        self, kind: Command | BlockType | str, *, parent_id: Optional[str] = None
    ) -> Optional[ProgramBlock]:
        """Append a new block to the program or to a container's children.

        ``kind`` is either a Command (creates a COMMAND block) or LOOP/IF_COLOR.
        Returns the created block, or None when no level is loaded, the level's
        ``max_commands`` is reached, a run is active, or ``parent_id`` does not
        name a container.
        """
        level = self.current_level
        if level is None or self._running:
            return None
        if self.program_length >= level.max_commands:
            return None

        value = kind.value if isinstance(kind, (Command, BlockType)) else kind
        if value == BlockType.LOOP:
            block = ProgramBlock(
                type=BlockType.LOOP, iterations=DEFAULT_LOOP_ITERATIONS, children=[]
            )
        elif value == BlockType.IF_COLOR:
            block = ProgramBlock(
                type=BlockType.IF_COLOR, condition_color=DEFAULT_CONDITION_COLOR, children=[]
            )
        else:
            block = ProgramBlock.cmd(value)

        if parent_id is None:
            self.program.append(block)
            return block

        parent = _find_block(self.program, parent_id)
        if parent is None or parent.type == BlockType.COMMAND:
            return None
        if parent.children is None:
            parent.children = []
        parent.children.append(block)
        return block

    def remove_block(self, block_id: str) -> bool:
        """Remove the block with ``block_id`` wherever it sits in the tree."""
        if self._running:
            return False
        return _remove_block(self.program, block_id)

    def set_program(self, blocks: Sequence[ProgramBlock]) -> None:
        if self._running:
            return
        self.program = list(blocks)

    def clear_program(self) -> None:
        if self._running:
            return
        self.program = []

    def set_speed(self, step_delay_ms: int) -> None:
        """Change the pause between steps. Negative values are clamped to 0."""
        self.step_delay_ms = max(0, int(step_delay_ms))

    # =============================
    # Queries
    # =============================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def can_execute(self) -> bool:
        return (
            self.status == RunStatus.IDLE
            and not self._running
            and self.current_level is not None
            and bool(self.program)
        )

    @property
    def is_win(self) -> bool:
        """True iff every goal of the active level has been lit this attempt."""
        level = self.current_level
        if level is None:
            return False
        return all(goal in self.lit_goals for goal in level.goals)

    def interactive_snapshot(self) -> Dict[str, bool]:
        return self.interactive.snapshot()

    def render(self) -> str:
        """ASCII picture of the level with the robot and lit goals drawn in."""
        return render_ascii_level(self.grid, robot=self.robot, lit_goals=self.lit_goals)

    # =============================
    # Run control
    # =============================

    async def run_program(
        self, program: Optional[Sequence[ProgramBlock]] = None
    ) -> RunOutcome:
        """Execute ``program`` (or the stored program) from the start pose.

        Returns:
            RunOutcome.WIN / FAIL when the run completes, CANCELLED when
            ``cancel_run`` interrupted it, REJECTED when it never started.
        """
        blocks = list(self.program if program is None else program)
        level = self.current_level

        if self._running:
            log_outcome(RunOutcome.REJECTED, "Run rejected: another run is active")
            return RunOutcome.REJECTED
        if level is None:
            log_outcome(RunOutcome.REJECTED, "Run rejected: no level loaded")
            return RunOutcome.REJECTED
        if not blocks:
            log_outcome(RunOutcome.REJECTED, "Run rejected: program is empty")
            return RunOutcome.REJECTED

        if self.status in (RunStatus.WIN, RunStatus.FAIL):
            # Retrying after a finished attempt starts from a clean IDLE state.
            self._set_status(RunStatus.IDLE)

        self._running = True
        self._token = CancelToken()
        # Runs always start from the level's start pose with default tile state.
        self.reset_position()
        self._set_status(RunStatus.RUNNING)

        executor = BlockExecutor(
            self.grid,
            self.interactive,
            self.robot,
            self.lit_goals,
            rules=self.rules,
            token=self._token,
            pause=self._pause,
            listeners=[self._track_step, *self.step_listeners],
            max_loop_iterations=self.max_loop_iterations,
            verbose=self.verbose,
        )

        log_info(f"Running {_count_blocks(blocks)} blocks on level {level.id}")

        try:
            result = await executor.run_sequence(blocks)
            if self._token.cancelled:
                # A reset during the final pause still counts as a cancellation.
                result = ExecutionResult.CANCELLED
        finally:
            self._running = False
            self.current_path = ()
            self.active_action = None

        if result is ExecutionResult.CANCELLED:
            log_outcome(RunOutcome.CANCELLED, "Run cancelled")
            self.reset_to_start()
            outcome = RunOutcome.CANCELLED
        elif result is ExecutionResult.FAILURE:
            self.failure_reason = executor.last_failure
            self._set_status(RunStatus.FAIL)
            log_outcome(RunOutcome.FAIL, f"Run failed: {executor.last_failure}")
            outcome = RunOutcome.FAIL
        elif self.is_win:
            self._set_status(RunStatus.WIN)
            log_outcome(RunOutcome.WIN, f"Level {level.id} solved!")
            outcome = RunOutcome.WIN
        else:
            self.failure_reason = "goals not lit"
            self._set_status(RunStatus.FAIL)
            log_outcome(
                RunOutcome.FAIL,
                f"Program finished with {len(self.lit_goals)}/{len(level.goals)} goals lit",
            )
            outcome = RunOutcome.FAIL

        self._notify_finished(outcome)
        return outcome

    def cancel_run(self) -> None:
        """Request cooperative cancellation. Takes effect before the next block."""
        if self._running:
            self._token.cancel()

    def reset_to_start(self) -> None:
        """Full reset: attempt state back to level defaults and status to IDLE.

        The stored program is kept. No-op when no level is loaded.
        """
        level = self.current_level
        if level is None:
            return
        if self._running:
            self._token.cancel()
        self._set_status(RunStatus.IDLE)
        self._reset_attempt(level)

    def reset_position(self) -> None:
        """Reposition reset: like reset_to_start but leaves the status untouched."""
        level = self.current_level
        if level is None:
            return
        self._reset_attempt(level)

    # =============================
    # Internals
    # =============================

    def _reset_attempt(self, level: Level) -> None:
        # Mutate in place: an active executor holds these same objects.
        if self.robot is None:
            self.robot = Robot.from_start(level.start)
        else:
            self.robot.x, self.robot.y, self.robot.dir = level.start.x, level.start.y, level.start.dir
        self.lit_goals.clear()
        self.interactive.initialize(level)
        self.current_path = ()
        self.active_action = None
        self.failure_reason = None

    def _set_status(self, status: RunStatus) -> None:
        if status not in STATUS_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(current=self.status, requested=status)
        self.status = status

    async def _pause(self) -> None:
        await asyncio.sleep(self.step_delay_ms / 1000)

    def _track_step(self, event: StepEvent) -> None:
        self.current_path = event.path
        if event.kind == StepEventKind.BLOCK_STARTED:
            self.active_action = event.command
        else:
            self.active_action = None

    def _notify_finished(self, outcome: RunOutcome) -> None:
        if not self.step_listeners or self.robot is None:
            return
        event = StepEvent(
            kind=StepEventKind.RUN_FINISHED,
            robot=self.robot.model_copy(),
            lit_goals=list(self.lit_goals),
            interactive_state=self.interactive.snapshot(),
            outcome=outcome,
        )
        for listener in self.step_listeners:
            try:
                listener(event)
            except Exception as exc:
                log_error(f"Step listener failed: {exc}")


def _count_blocks(blocks: Sequence[ProgramBlock]) -> int:
    count = 0
    for block in blocks:
        count += 1
        if block.children:
            count += _count_blocks(block.children)
    return count


def _find_block(blocks: Sequence[ProgramBlock], block_id: str) -> Optional[ProgramBlock]:
    for block in blocks:
        if block.id == block_id:
            return block
        if block.children:
            found = _find_block(block.children, block_id)
            if found is not None:
                return found
    return None


def _remove_block(blocks: List[ProgramBlock], block_id: str) -> bool:
    for index, block in enumerate(blocks):
        if block.id == block_id:
            del blocks[index]
            return True
    for block in blocks:
        if block.children and _remove_block(block.children, block_id):
            return True
    return False
