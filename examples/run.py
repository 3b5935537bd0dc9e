"""
Gridbot demo: solve every bundled level.

Loads examples/levels.json, runs a hand-written solution for each level and
prints the board after every attempt.

Run: python examples/run.py
"""

import asyncio
from typing import Dict, List

from gridbot import (
    Command,
    GameSession,
    LevelRepository,
    ProgramBlock,
    RunOutcome,
    StepEvent,
    StepEventKind,
)

SOLUTIONS: Dict[int, List[ProgramBlock]] = {
    1: [
        ProgramBlock.cmd(Command.MOVE),
        ProgramBlock.cmd(Command.MOVE),
        ProgramBlock.cmd(Command.LIGHT),
    ],
    2: [
        ProgramBlock.loop(4, [ProgramBlock.cmd(Command.MOVE)]),
        ProgramBlock.cmd(Command.LIGHT),
    ],
    3: [
        ProgramBlock.loop(3, [ProgramBlock.cmd(Command.JUMP)]),
        ProgramBlock.cmd(Command.LIGHT),
    ],
    4: [
        ProgramBlock.loop(3, [ProgramBlock.cmd(Command.MOVE)]),
        ProgramBlock.cmd(Command.LIGHT),
    ],
    5: [
        ProgramBlock.cmd(Command.MOVE),
        ProgramBlock.cmd(Command.MOVE),
        ProgramBlock.cmd(Command.LIGHT),
    ],
    6: [
        ProgramBlock.loop(
            4,
            [
                ProgramBlock.cmd(Command.MOVE),
                ProgramBlock.if_color("red", [ProgramBlock.cmd(Command.LIGHT)]),
            ],
        ),
    ],
    7: [
        ProgramBlock.cmd(Command.MOVE),
        ProgramBlock.cmd(Command.MOVE),
        ProgramBlock.cmd(Command.LIGHT),
        ProgramBlock.cmd(Command.TURN_R),
        ProgramBlock.cmd(Command.MOVE),
        ProgramBlock.cmd(Command.LIGHT),
    ],
}


def print_command(event: StepEvent) -> None:
    """Step listener: one line per executed command."""
    if event.kind != StepEventKind.COMMAND_FINISHED:
        return
    mark = "ok" if event.success else "FAILED"
    print(
        f"    {event.command:<7} -> ({event.robot.x}, {event.robot.y}) "
        f"{event.robot.dir.value}  [{mark}]"
    )


async def main() -> None:
    repository = LevelRepository.from_file()
    session = GameSession(repository, step_delay_ms=50, step_listeners=[print_command])

    results: Dict[int, RunOutcome] = {}
    for level_id in repository.ids():
        session.load_level(level_id)
        session.set_program(SOLUTIONS.get(level_id, []))
        results[level_id] = await session.run_program()
        print(session.render())
        print()

    solved = sum(1 for outcome in results.values() if outcome == RunOutcome.WIN)
    print(f"Solved {solved}/{len(results)} levels")


if __name__ == "__main__":
    asyncio.run(main())
