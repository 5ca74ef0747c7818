"""Use-case flows that combine the scheduler with a vocabulary store."""

from .review import InvalidScoreError, ReviewFlow

__all__ = ["InvalidScoreError", "ReviewFlow"]
