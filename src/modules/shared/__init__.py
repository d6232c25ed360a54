"""
BodyCount Shared Module

Domain-level foundations for gameplay modules:
- Domain exceptions and error handling
- Base service pattern
"""

from .base_service import BaseService
from .exceptions import (
    ApplyFailureError,
    BodyCountDomainException,
    CatalogExhaustedError,
    CatalogIntegrityError,
    InvalidCounterReportError,
    MilestoneNotReachedError,
    RewardsDisabledError,
    ValidationError,
)

__all__ = [
    "BaseService",
    "BodyCountDomainException",
    "ValidationError",
    "MilestoneNotReachedError",
    "InvalidCounterReportError",
    "RewardsDisabledError",
    "CatalogExhaustedError",
    "ApplyFailureError",
    "CatalogIntegrityError",
]
