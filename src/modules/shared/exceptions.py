"""
Domain exceptions for the BodyCount reward engine.

Purpose
-------
Define the exception hierarchy for reward rules: milestone validation,
policy switches, catalog exhaustion and failed item mutations. The progression
service raises these internally and converts them to outcome codes at its
public boundary, so none of them ever reaches the host as a crash.

Design Notes
------------
- All domain exceptions inherit from `BodyCountDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
  - `reason_code`: the wire-level reason reported to clients
- Severity and retry helpers live in `src.core.exceptions` and accept both
  domain and infrastructure exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from src.core.exceptions import ErrorSeverity


class BodyCountDomainException(Exception):
    """
    Base exception for all BodyCount domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False
    REASON_CODE: str = "error"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    @property
    def reason_code(self) -> str:
        return self.REASON_CODE

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "reason_code": self.reason_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ValidationError(BodyCountDomainException):
    """
    Raised when an input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False
    REASON_CODE = "invalid_request"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class MilestoneNotReachedError(ValidationError):
    """
    Raised when a reward is requested before the next milestone threshold.

    Args:
        counter: The reconciled counter
        required: Counter value needed for the next milestone
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    REASON_CODE = "milestone_not_reached"

    def __init__(self, counter: int, required: int) -> None:
        self.counter = counter
        self.required = required
        super().__init__("counter", f"Milestone not reached: {counter}/{required}")
        self.details.update({"counter": counter, "required": required})
        self.error_code = "MILESTONE_NOT_REACHED"


class InvalidCounterReportError(ValidationError):
    """
    Raised when a client reports a counter that is not a usable number.

    Args:
        value: The raw reported value
        message: Override for the default "not a number" message
    """

    def __init__(self, value: Any, message: Optional[str] = None) -> None:
        self.value = value
        super().__init__("counter", message or f"Reported counter must be a number, got {value!r}")
        self.error_code = "INVALID_COUNTER_REPORT"


class RewardsDisabledError(BodyCountDomainException):
    """Raised when both reward directions are switched off by policy."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    REASON_CODE = "rewards_disabled"

    def __init__(self) -> None:
        super().__init__(
            "Rewards are disabled in server settings",
            error_code="REWARDS_DISABLED",
        )


class CatalogExhaustedError(BodyCountDomainException):
    """
    Raised when neither pool holds an eligible item for the actor.

    Args:
        actor_id: Actor whose pools came up empty
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    REASON_CODE = "no_reward_available"

    def __init__(self, actor_id: Any) -> None:
        self.actor_id = actor_id
        super().__init__(
            "All items have been earned or removed",
            details={"actor_id": str(actor_id)},
            error_code="CATALOG_EXHAUSTED",
        )


class ApplyFailureError(BodyCountDomainException):
    """
    Raised when every selected candidate failed to apply this iteration.

    Args:
        actor_id: Actor the rewards were applied to
        attempted: Item ids that were selected and failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True
    REASON_CODE = "apply_failed"

    def __init__(self, actor_id: Any, attempted: Optional[list[str]] = None) -> None:
        self.actor_id = actor_id
        self.attempted = list(attempted or [])
        super().__init__(
            "Failed to apply reward",
            details={"actor_id": str(actor_id), "attempted": self.attempted},
            error_code="APPLY_FAILED",
        )


class CatalogIntegrityError(BodyCountDomainException):
    """
    Raised when the static catalog data is inconsistent.

    Args:
        problem: Description of the integrity violation
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    REASON_CODE = "catalog_integrity"

    def __init__(self, problem: str, **details: Any) -> None:
        self.problem = problem
        super().__init__(
            f"Catalog integrity violation: {problem}",
            details=details,
            error_code="CATALOG_INTEGRITY",
        )

