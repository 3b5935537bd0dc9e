"""Interactive tile state (doors, cracked tiles) and enter/leave triggers.

The store holds one boolean per tile id:

- door: True = open, False = closed
- cracked: True = safe, False = broken

Switches and teleports are stateless; they act when entered.
"""

from __future__ import annotations

from typing import Dict, Optional

from gridbot.schemas import Level, Position, Tile, TileType


class InteractiveStateStore:
    """Per-attempt boolean overlay keyed by tile id.

    Rebuilt from the level's declared ``id``/``state`` pairs on every load,
    reset and run start. Tiles without an id, or without a declared state,
    are not tracked until a trigger writes to them.
    """

    def __init__(self) -> None:
        self._state: Dict[str, bool] = {}
        self._tiles: Dict[tuple, Tile] = {}
        self._tiles_by_id: Dict[str, Tile] = {}

    def initialize(self, level: Optional[Level]) -> None:
        """Reset the mapping to the level's defaults (empty when no level)."""
        self._state = {}
        self._tiles = {}
        self._tiles_by_id = {}
        if level is None:
            return

        for tile in level.layout:
            self._tiles[(tile.x, tile.y)] = tile
            if tile.id is not None:
                # First declaration wins if a level reuses an id.
                self._tiles_by_id.setdefault(tile.id, tile)
                if tile.state is not None:
                    self._state[tile.id] = tile.state

    def get(self, tile_id: str) -> Optional[bool]:
        return self._state.get(tile_id)

    def set(self, tile_id: str, value: bool) -> None:
        self._state[tile_id] = value

    def snapshot(self) -> Dict[str, bool]:
        """Return a copy of the current mapping."""
        return dict(self._state)

    def handle_enter(self, position: Position) -> Optional[Position]:
        """Fire the enter trigger of the tile at ``position``.

        Returns the teleport destination when the tile is a linked teleport,
        otherwise None. The destination's own triggers are not evaluated.
        """
        tile = self._tiles.get(position.as_tuple())
        if tile is None or tile.target_id is None:
            return None

        if tile.type == TileType.SWITCH:
            # Unset targets count as False, so the first toggle opens/arms them.
            self._state[tile.target_id] = not self._state.get(tile.target_id, False)
            return None

        if tile.type == TileType.TELEPORT:
            destination = self._tiles_by_id.get(tile.target_id)
            if destination is None:
                return None
            return destination.position

        return None

    def handle_leave(self, position: Position) -> None:
        """Fire the leave trigger: a cracked tile breaks every time it is left."""
        tile = self._tiles.get(position.as_tuple())
        if tile is None:
            return
        if tile.type == TileType.CRACKED and tile.id is not None:
            self._state[tile.id] = False
