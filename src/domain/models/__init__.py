"""
Domain models package for BodyCount.

Domain models are separate from database models:
- Database models (src/database/models/): anemic SQLAlchemy schemas
- Domain models (src/domain/models/): rich objects with business rules

Repositories convert between the two.
"""

from .base import (
    AggregateRoot,
    DomainEvent,
    DomainValidationError,
    Entity,
    validate_non_negative,
)
from .progression import (
    BLOB_SCHEMA_VERSION,
    ProgressionRecord,
    RewardDirection,
    RewardEvent,
)

__all__ = [
    "Entity",
    "AggregateRoot",
    "DomainEvent",
    "DomainValidationError",
    "validate_non_negative",
    "ProgressionRecord",
    "RewardDirection",
    "RewardEvent",
    "BLOB_SCHEMA_VERSION",
]
