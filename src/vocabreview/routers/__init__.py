"""Router package exports."""

from . import health, review, vocabulary

__all__ = [
    "health",
    "review",
    "vocabulary",
]
