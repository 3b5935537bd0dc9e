"""
Level loading and lookup.

This module provides LevelLoader for turning a JSON level catalogue into
validated Level models, and LevelRepository, the read-only lookup the game
session consumes.

Catalogue file structure (a JSON array, one object per level):
```json
[
  {
    "id": 1,
    "title": "First steps",
    "description": "...",
    "gridSize": 5,
    "layout": [{"x": 0, "y": 0, "type": "ground", "height": 0}, ...],
    "start": {"x": 0, "y": 0, "dir": "E"},
    "goals": [{"x": 2, "y": 0}],
    "availableBlocks": ["MOVE", "LIGHT"],
    "maxCommands": 5
  }
]
```

Usage:
    repository = LevelRepository(LevelLoader().load())
    session = GameSession(repository)
    session.load_level(1)
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from .config import Config
from .schemas import Level


class LevelLoader:
    """Load and validate a level catalogue from a JSON file.

    Validation is delegated to the pydantic Level model (unique tiles, goals on
    the layout, walkable start). The first invalid level aborts the load with a
    ValueError naming its position in the file.
    """

    def __init__(self, levels_path: Optional[Path] = None):
        """Initialize level loader.

        Args:
            levels_path: JSON catalogue to read. Defaults to Config.LEVELS_PATH
        """
        self.levels_path = Path(levels_path) if levels_path is not None else Config.LEVELS_PATH

    def load(self) -> List[Level]:
        """Read the catalogue and return its levels in file order.

        Raises:
            FileNotFoundError: If the catalogue file doesn't exist
            ValueError: If the JSON is not a list or a level fails validation
            json.JSONDecodeError: If the file contains invalid JSON
        """
        if not self.levels_path.exists():
            raise FileNotFoundError(f"Level catalogue not found at {self.levels_path}")

        data = json.loads(self.levels_path.read_text())
        return self.parse(data)

    def parse(self, data: Any) -> List[Level]:
        """Validate already-decoded catalogue data."""
        if not isinstance(data, list):
            raise ValueError("Level catalogue must be a JSON array of levels")

        levels: List[Level] = []
        seen_ids = set()
        for index, raw in enumerate(data):
            try:
                level = Level.model_validate(raw)
            except ValidationError as exc:
                raise ValueError(f"Level at index {index} is invalid:\n{exc}") from exc
            if level.id in seen_ids:
                raise ValueError(f"Duplicate level id {level.id} at index {index}")
            seen_ids.add(level.id)
            levels.append(level)
        return levels


class LevelRepository:
    """In-memory, read-only catalogue of validated levels keyed by id.

    Lookups of unknown ids return None rather than raising, so callers can
    probe before acting.
    """

    def __init__(self, levels: Iterable[Level] = ()):
        self._levels: Dict[int, Level] = {}
        for level in levels:
            self._levels[level.id] = level

    @classmethod
    def from_file(cls, levels_path: Optional[Path] = None) -> "LevelRepository":
        return cls(LevelLoader(levels_path).load())

    def get(self, level_id: int) -> Optional[Level]:
        return self._levels.get(level_id)

    def ids(self) -> List[int]:
        return sorted(self._levels)

    def next_id(self, level_id: int) -> Optional[int]:
        """Smallest level id greater than ``level_id``, or None on the last level."""
        later = [candidate for candidate in self._levels if candidate > level_id]
        return min(later) if later else None

    def __len__(self) -> int:
        return len(self._levels)

    def __contains__(self, level_id: object) -> bool:
        return level_id in self._levels
