"""
Database Models Package
========================

SQLAlchemy ORM models for the BodyCount reward engine.

All models are schema-only:
- No business logic (rules live in `src.domain.models`)
- `Mapped[]` syntax with `mapped_column()`
- Timestamps via `TimestampMixin`

Importing this package registers every table on `Base.metadata`.
"""

from src.core.database.base import Base

from .progression import ProgressionRow

__all__ = [
    "Base",
    "ProgressionRow",
]
