"""Debug rendering helpers for levels and robot state."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from gridbot.schemas import Direction, Position, Robot, TileType

from .grid import LevelGrid


_DEFAULT_TILE_SYMBOLS: Dict[str, str] = {
    TileType.GROUND.value: ". ",
    TileType.VOID.value: "  ",
    TileType.SWITCH.value: "s ",
    TileType.DOOR.value: "D ",
    "door_open": "d ",
    TileType.TELEPORT.value: "T ",
    TileType.CRACKED.value: "c ",
    "cracked_broken": "x ",
    "goal": "○ ",
    "goal_lit": "● ",
}

_ROBOT_SYMBOLS: Dict[Direction, str] = {
    Direction.N: "^ ",
    Direction.E: "> ",
    Direction.S: "v ",
    Direction.W: "< ",
}


def render_ascii_level(
    grid: LevelGrid,
    *,
    robot: Optional[Robot] = None,
    lit_goals: Iterable[Position] = (),
    symbols: Optional[Dict[str, str]] = None,
) -> str:
    """Render the whole level as ASCII, row 0 first.

    Doors and cracked tiles are drawn from the live interactive state so the
    picture matches what ``is_walkable`` would answer. The robot, when given,
    is drawn over whatever tile it stands on. Returns an empty string when no
    level is loaded.
    """

    if grid.level is None:
        return ""

    mapping = {**_DEFAULT_TILE_SYMBOLS}
    if symbols:
        mapping.update(symbols)

    lit = {goal.as_tuple() for goal in lit_goals}
    size = grid.level.grid_size

    lines: List[str] = []
    for y in range(size):
        row_chars: List[str] = []
        for x in range(size):
            if robot is not None and (robot.x, robot.y) == (x, y):
                row_chars.append(_ROBOT_SYMBOLS.get(robot.dir, "R "))
                continue
            if grid.is_goal(x, y):
                row_chars.append(mapping["goal_lit"] if (x, y) in lit else mapping["goal"])
                continue

            tile = grid.tile_at(x, y)
            if tile is None:
                row_chars.append(mapping[TileType.VOID.value])
            elif tile.type == TileType.DOOR and grid.is_walkable(x, y):
                row_chars.append(mapping["door_open"])
            elif tile.type == TileType.CRACKED and not grid.is_walkable(x, y):
                row_chars.append(mapping["cracked_broken"])
            else:
                row_chars.append(mapping.get(tile.type.value, "??"))
        lines.append("".join(row_chars))

    return "\n".join(lines)
