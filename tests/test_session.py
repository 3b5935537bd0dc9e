"""Tests covering the game session: run status, resets, cancellation and editing."""

import asyncio
from typing import List

import pytest

from gridbot.levels import LevelRepository
from gridbot.schemas import (
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
from gridbot.session import GameSession, InvalidStatusTransitionError


def _corridor() -> Level:
    """Start (0,0) facing east, goal (2,0), ground row, nothing below it."""
    return Level(
        id=1,
        title="Corridor",
        grid_size=5,
        layout=[Tile(x=x, y=0) for x in range(3)],
        start=StartPose(x=0, y=0, dir=Direction.E),
        goals=[Position(x=2, y=0)],
        available_blocks=[Command.MOVE, Command.TURN_L, Command.LIGHT],
        max_commands=6,
    )


def _door_level() -> Level:
    return Level(
        id=2,
        title="Door",
        grid_size=5,
        layout=[
            Tile(x=0, y=0),
            Tile(x=1, y=0, type=TileType.SWITCH, target_id="door_A"),
            Tile(x=2, y=0, type=TileType.DOOR, id="door_A", state=False),
            Tile(x=3, y=0),
        ],
        start=StartPose(x=0, y=0, dir=Direction.E),
        goals=[Position(x=3, y=0)],
        max_commands=6,
    )


def _session(**kwargs) -> GameSession:
    kwargs.setdefault("step_delay_ms", 0)
    kwargs.setdefault("verbose", False)
    session = GameSession(LevelRepository([_corridor(), _door_level()]), **kwargs)
    assert session.load_level(1)
    return session


def _cmds(*commands: Command) -> List[ProgramBlock]:
    return [ProgramBlock.cmd(command) for command in commands]


# ----------------------------------------------------------------------
# Runs
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_straight_line_solution_wins():
    session = _session()
    session.set_program(_cmds(Command.MOVE, Command.MOVE, Command.LIGHT))

    outcome = await session.run_program()

    assert outcome is RunOutcome.WIN
    assert session.status is RunStatus.WIN
    assert session.robot == Robot(x=2, y=0, dir=Direction.E)
    assert session.lit_goals == [Position(x=2, y=0)]
    assert session.is_win is True


@pytest.mark.asyncio
async def test_blocked_move_fails_where_it_stopped():
    session = _session()

    outcome = await session.run_program(_cmds(Command.MOVE, Command.TURN_L, Command.MOVE))

    assert outcome is RunOutcome.FAIL
    assert session.status is RunStatus.FAIL
    assert session.robot == Robot(x=1, y=0, dir=Direction.N)
    assert session.lit_goals == []
    assert session.failure_reason == "blocked"


@pytest.mark.asyncio
async def test_unlit_goals_fail_after_full_sequence():
    session = _session()

    outcome = await session.run_program(_cmds(Command.MOVE, Command.MOVE))

    assert outcome is RunOutcome.FAIL
    assert session.robot.position == Position(x=2, y=0)
    assert session.failure_reason == "goals not lit"


@pytest.mark.asyncio
async def test_empty_program_is_rejected_and_stays_idle():
    session = _session()

    assert await session.run_program() is RunOutcome.REJECTED
    assert session.status is RunStatus.IDLE
    assert session.can_execute is False


@pytest.mark.asyncio
async def test_run_without_level_is_rejected():
    session = GameSession(LevelRepository([_corridor()]), step_delay_ms=0)

    assert session.current_level is None
    assert await session.run_program(_cmds(Command.MOVE)) is RunOutcome.REJECTED
    session.reset_to_start()
    assert session.status is RunStatus.IDLE


@pytest.mark.asyncio
async def test_runs_always_start_from_the_start_pose():
    session = _session()
    session.robot.x, session.robot.y = 2, 0
    session.lit_goals.append(Position(x=2, y=0))

    outcome = await session.run_program(_cmds(Command.LIGHT))

    assert outcome is RunOutcome.FAIL
    assert session.robot.position == Position(x=0, y=0)
    assert session.lit_goals == []


@pytest.mark.asyncio
async def test_retry_after_fail_runs_again():
    session = _session()
    assert await session.run_program(_cmds(Command.TURN_L, Command.MOVE)) is RunOutcome.FAIL

    session.set_program(_cmds(Command.MOVE, Command.MOVE, Command.LIGHT))
    assert await session.run_program() is RunOutcome.WIN


@pytest.mark.asyncio
async def test_second_run_while_active_is_rejected():
    session = _session()
    session.set_program(_cmds(Command.MOVE, Command.MOVE, Command.LIGHT))

    first = asyncio.create_task(session.run_program())
    await asyncio.sleep(0)
    assert session.is_running is True
    assert session.status is RunStatus.RUNNING

    assert await session.run_program() is RunOutcome.REJECTED
    assert await first is RunOutcome.WIN


@pytest.mark.asyncio
async def test_cancel_returns_cancelled_and_resets():
    session = None

    def cancel_on_first_command(event: StepEvent) -> None:
        if event.kind == StepEventKind.COMMAND_FINISHED:
            session.cancel_run()

    session = _session(step_listeners=[cancel_on_first_command])
    session.set_program(_cmds(Command.MOVE, Command.MOVE, Command.LIGHT))

    outcome = await session.run_program()

    assert outcome is RunOutcome.CANCELLED
    assert session.status is RunStatus.IDLE
    assert session.robot == Robot(x=0, y=0, dir=Direction.E)
    assert session.lit_goals == []
    assert session.program_length == 3


@pytest.mark.asyncio
async def test_reset_during_run_cancels_it():
    session = _session()
    session.set_program(_cmds(Command.MOVE, Command.MOVE, Command.LIGHT))

    task = asyncio.create_task(session.run_program())
    await asyncio.sleep(0)
    session.reset_to_start()

    assert await task is RunOutcome.CANCELLED
    assert session.status is RunStatus.IDLE
    assert session.robot.position == Position(x=0, y=0)


@pytest.mark.asyncio
async def test_cancel_interrupts_nested_loops_without_moves():
    session = _session()
    unmatched = ProgramBlock.if_color("blue", _cmds(Command.MOVE))
    session.set_program([
        ProgramBlock.loop(100, [ProgramBlock.loop(100, [ProgramBlock.loop(100, [unmatched])])])
    ])

    task = asyncio.create_task(session.run_program())
    await asyncio.sleep(0)
    assert session.is_running is True
    session.cancel_run()

    assert await task is RunOutcome.CANCELLED
    assert session.status is RunStatus.IDLE
    assert session.robot.position == Position(x=0, y=0)


def test_cancel_without_run_is_a_no_op():
    session = _session()
    session.cancel_run()
    assert session.status is RunStatus.IDLE


# ----------------------------------------------------------------------
# Resets and interactive state
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_full_reset_after_fail_restores_defaults_and_keeps_program():
    session = _session()
    assert session.load_level(2)
    # Opens the door, walks through, then fails by walking off the end.
    session.set_program(_cmds(Command.MOVE, Command.MOVE, Command.MOVE, Command.MOVE))

    assert await session.run_program() is RunOutcome.FAIL
    assert session.interactive_snapshot() == {"door_A": True}

    session.reset_to_start()

    assert session.status is RunStatus.IDLE
    assert session.robot == Robot(x=0, y=0, dir=Direction.E)
    assert session.lit_goals == []
    assert session.interactive_snapshot() == {"door_A": False}
    assert session.program_length == 4
    assert session.can_execute is True


@pytest.mark.asyncio
async def test_reposition_reset_keeps_status():
    session = _session()
    assert await session.run_program(_cmds(Command.MOVE, Command.TURN_L, Command.MOVE)) is RunOutcome.FAIL

    session.reset_position()

    assert session.status is RunStatus.FAIL
    assert session.robot.position == Position(x=0, y=0)


@pytest.mark.asyncio
async def test_door_level_solution_wins():
    session = _session()
    session.load_level(2)

    program = [ProgramBlock.loop(3, _cmds(Command.MOVE)), ProgramBlock.cmd(Command.LIGHT)]
    assert await session.run_program(program) is RunOutcome.WIN


def test_illegal_status_transition_raises():
    session = _session()

    with pytest.raises(InvalidStatusTransitionError) as excinfo:
        session._set_status(RunStatus.WIN)
    assert "IDLE -> WIN" in str(excinfo.value)


# ----------------------------------------------------------------------
# Observability
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_session_mirrors_active_action_and_reports_finish():
    seen = []
    finished: List[StepEvent] = []
    session = None

    def listener(event: StepEvent) -> None:
        if event.kind == StepEventKind.BLOCK_STARTED:
            seen.append((session.current_path, session.active_action))
        elif event.kind == StepEventKind.RUN_FINISHED:
            finished.append(event)

    session = _session(step_listeners=[listener])
    program = [ProgramBlock.loop(2, _cmds(Command.MOVE)), ProgramBlock.cmd(Command.LIGHT)]

    assert await session.run_program(program) is RunOutcome.WIN
    assert seen == [
        ((0,), None),
        ((0, 0), "MOVE"),
        ((0, 0), "MOVE"),
        ((1,), "LIGHT"),
    ]
    assert finished[0].outcome is RunOutcome.WIN
    assert finished[0].lit_goals == [Position(x=2, y=0)]
    assert session.current_path == ()
    assert session.active_action is None


def test_render_shows_robot():
    session = _session()
    assert session.render().splitlines()[0].startswith("> . ○")


# ----------------------------------------------------------------------
# Level lifecycle and program editing
# ----------------------------------------------------------------------


def test_level_navigation():
    session = _session()

    assert session.has_next_level is True
    assert session.next_level() is True
    assert session.current_level.title == "Door"
    assert session.has_next_level is False
    assert session.next_level() is False
    assert session.load_level(99) is False
    assert session.current_level_id == 2


def test_loading_a_level_clears_the_program():
    session = _session()
    session.add_block(Command.MOVE)

    session.load_level(2)
    assert session.program == []


def test_add_block_respects_max_commands_including_nested():
    session = _session()

    loop = session.add_block(BlockType.LOOP)
    assert loop.iterations == 2 and loop.children == []
    condition = session.add_block("IF_COLOR")
    assert condition.condition_color == "red"

    assert session.add_block(Command.MOVE, parent_id=loop.id) is not None
    assert session.add_block(Command.TURN_L, parent_id=condition.id) is not None
    assert session.add_block(Command.LIGHT) is not None
    assert session.add_block(Command.MOVE, parent_id=loop.id) is not None

    assert session.program_length == 6
    assert session.add_block(Command.MOVE) is None


def test_add_block_rejects_bad_parent():
    session = _session()
    move = session.add_block(Command.MOVE)

    assert session.add_block(Command.MOVE, parent_id=move.id) is None
    assert session.add_block(Command.MOVE, parent_id="missing") is None
    assert session.program_length == 1


def test_remove_block_searches_nested_children():
    session = _session()
    loop = session.add_block(BlockType.LOOP)
    inner = session.add_block(Command.MOVE, parent_id=loop.id)
    session.add_block(Command.LIGHT)

    assert session.remove_block(inner.id) is True
    assert loop.children == []
    assert session.remove_block(inner.id) is False
    assert session.remove_block(loop.id) is True
    assert session.program_length == 1


def test_clear_program_and_speed():
    session = _session()
    session.add_block(Command.MOVE)
    session.clear_program()
    assert session.program == []

    session.set_speed(250)
    assert session.step_delay_ms == 250
    session.set_speed(-5)
    assert session.step_delay_ms == 0


def test_editing_without_level_is_refused():
    session = GameSession(LevelRepository([]), step_delay_ms=0)

    assert session.add_block(Command.MOVE) is None
    assert session.is_win is False
    assert session.has_next_level is False
    assert session.next_level() is False
