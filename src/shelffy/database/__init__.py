"""Database module for shelffy."""

from .connection import DatabaseManager

__all__ = ["DatabaseManager"]
