"""Grid query service for a loaded level.

Walkability is dynamic: doors and cracked tiles answer according to the
live interactive state, not the static tile data.
"""

from __future__ import annotations

from typing import Dict, Optional, Set, Tuple

from gridbot.schemas import Level, Tile, TileType

from .interactive import InteractiveStateStore


class LevelGrid:
    """Read-only view over a level's layout plus the live interactive state.

    A grid built without a level answers every query with None/False so callers
    can probe before a level is loaded.
    """

    def __init__(self, level: Optional[Level], interactive: InteractiveStateStore):
        self.level = level
        self.interactive = interactive
        # Index tiles by coordinate once; level data never changes after load.
        self._tiles: Dict[Tuple[int, int], Tile] = {}
        self._goals: Set[Tuple[int, int]] = set()
        if level is not None:
            self._tiles = {(tile.x, tile.y): tile for tile in level.layout}
            self._goals = {goal.as_tuple() for goal in level.goals}

    def in_bounds(self, x: int, y: int) -> bool:
        if self.level is None:
            return False
        size = self.level.grid_size
        return 0 <= x < size and 0 <= y < size

    def tile_at(self, x: int, y: int) -> Tile | None:
        """Return the tile at (x, y), or None when absent or out of bounds."""
        if not self.in_bounds(x, y):
            return None
        return self._tiles.get((x, y))

    def height_at(self, x: int, y: int) -> int:
        """Tile height at (x, y). Positions without a tile count as height 0."""
        tile = self.tile_at(x, y)
        return tile.height if tile is not None else 0

    def is_walkable(self, x: int, y: int) -> bool:
        tile = self.tile_at(x, y)
        if tile is None or tile.type == TileType.VOID:
            return False

        if tile.type == TileType.DOOR:
            # Closed unless the interactive state says open
            return tile.id is not None and self.interactive.get(tile.id) is True

        if tile.type == TileType.CRACKED:
            # Safe unless explicitly marked broken
            if tile.id is None:
                return True
            return self.interactive.get(tile.id) is not False

        return True

    def is_goal(self, x: int, y: int) -> bool:
        return (x, y) in self._goals

