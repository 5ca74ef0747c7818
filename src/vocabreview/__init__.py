"""Spaced-repetition review service for vocabulary captured while reading."""

__version__ = "0.1.0"
