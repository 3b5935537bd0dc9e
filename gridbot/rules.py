"""
MovementRules interface for the height physics of MOVE and JUMP.

Movement rules only answer "is this step physically possible given the two
tile heights". Walkability (void, doors, cracked tiles) is the grid's job and
is checked separately by the executor.

Design principle: rules are injected into the session, so a level pack can
swap in different physics without touching the executor.
"""

from abc import ABC, abstractmethod

from .config import Config


class MovementRules(ABC):
    """Abstract base class for height-based movement constraints."""

    @abstractmethod
    def can_move(self, current_height: int, target_height: int) -> bool:
        """Return True if a MOVE may go from ``current_height`` to ``target_height``."""
        pass

    @abstractmethod
    def can_jump(self, current_height: int, target_height: int) -> bool:
        """Return True if a JUMP may go from ``current_height`` to ``target_height``."""
        pass


class DefaultMovementRules(MovementRules):
    """Standard physics: MOVE stays level, JUMP covers up to one step up or down.

    Args:
        max_jump_height: Largest absolute height difference a JUMP may cover.
            Defaults to ``Config.MAX_JUMP_HEIGHT`` (1).
    """

    def __init__(self, max_jump_height: int | None = None):
        self.max_jump_height = (
            Config.MAX_JUMP_HEIGHT if max_jump_height is None else max_jump_height
        )

    def can_move(self, current_height: int, target_height: int) -> bool:
        return target_height == current_height

    def can_jump(self, current_height: int, target_height: int) -> bool:
        # Flat, one up and one down are all legal jumps.
        return abs(target_height - current_height) <= self.max_jump_height
