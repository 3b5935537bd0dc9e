"""Direction arithmetic for the robot heading.

All functions are total: an unrecognised heading falls back to ``N``.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from gridbot.schemas import Direction

# Clockwise cycle. Turning right steps forward, turning left steps back.
DIRECTIONS: List[Direction] = [Direction.N, Direction.E, Direction.S, Direction.W]

_DELTAS: Dict[Direction, Tuple[int, int]] = {
    Direction.N: (0, -1),
    Direction.E: (1, 0),
    Direction.S: (0, 1),
    Direction.W: (-1, 0),
}


def _index(direction: Direction | str) -> int:
    try:
        return DIRECTIONS.index(Direction(direction))
    except ValueError:
        return -1


def delta(direction: Direction | str) -> Tuple[int, int]:
    """Return the (dx, dy) unit vector for ``direction``."""
    index = _index(direction)
    if index == -1:
        return _DELTAS[Direction.N]
    return _DELTAS[DIRECTIONS[index]]


def turn_left(direction: Direction | str) -> Direction:
    index = _index(direction)
    if index == -1:
        return Direction.N
    return DIRECTIONS[(index + 3) % 4]


def turn_right(direction: Direction | str) -> Direction:
    index = _index(direction)
    if index == -1:
        return Direction.N
    return DIRECTIONS[(index + 1) % 4]
