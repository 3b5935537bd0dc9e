"""Grid environment: direction arithmetic, tile queries and interactive state."""

from .directions import DIRECTIONS, delta, turn_left, turn_right
from .interactive import InteractiveStateStore
from .grid import LevelGrid
from .helpers import render_ascii_level

__all__ = [
    "DIRECTIONS",
    "delta",
    "turn_left",
    "turn_right",
    "InteractiveStateStore",
    "LevelGrid",
    "render_ascii_level",
]
