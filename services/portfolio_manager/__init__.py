"""Open positions for the linked account."""

from .position_tracker import PositionTracker

__all__ = ["PositionTracker"]
