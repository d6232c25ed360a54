"""
Progression domain ORM models.

Exports:
- ProgressionRow
"""

from .progression_record import ProgressionRow

__all__ = [
    "ProgressionRow",
]
