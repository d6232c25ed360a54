"""
Infrastructure exceptions for the BodyCount reward engine.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
host accessor failures, persistence failures, configuration errors and
malformed wire traffic. Game rules (milestones, catalog exhaustion) live in
`src.modules.shared.exceptions` instead.

Design Notes
------------
- All infrastructure exceptions inherit from `BodyCountInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- `HostError` is the soft-failure channel for every actor-state accessor.
  The engine catches it at the call site and treats it as "no change".
- Helper functions (`is_transient_error`, `get_error_severity`, `should_alert`)
  centralize common exception handling patterns.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning (e.g., milestone not reached)
    INFO = "info"  # Normal operation (e.g., catalog exhausted)
    WARNING = "warning"  # Concerning but handled (e.g., host read failure)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures requiring immediate action


class BodyCountInfrastructureException(Exception):
    """
    Base exception for all BodyCount infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise BodyCountInfrastructureException(
        ...     "Save data unavailable",
        ...     {"actor_id": "player-1"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

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

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
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


class ConfigurationError(BodyCountInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseError(BodyCountInfrastructureException):
    """
    Raised when database operations fail.

    Args:
        operation: Description of the database operation that failed
        original_error: The underlying database exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


class HostError(BodyCountInfrastructureException):
    """
    Raised by host collaborators when an actor-state accessor fails.

    Covers counter reads, item holding checks and item mutations. Callers in
    the engine treat it as a transient, non-fatal condition.

    Args:
        operation: Accessor that failed (e.g. ``"read_counter"``, ``"add"``)
        actor_id: Actor the accessor was called for
        original_error: The underlying exception, if any
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        actor_id: Any,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        self.actor_id = actor_id
        self.original_error = original_error
        error_msg = str(original_error) if original_error else "host accessor failed"
        super().__init__(
            f"Host error during {operation} for actor {actor_id}: {error_msg}",
            details={
                "operation": operation,
                "actor_id": str(actor_id),
                "error": error_msg,
                "error_type": (
                    type(original_error).__name__ if original_error else None
                ),
            },
            error_code="HOST_ERROR",
        )


class MessageDecodeError(BodyCountInfrastructureException):
    """
    Raised when a transport payload cannot be decoded into a message.

    Args:
        message_type: The declared message type, if any
        reason: What was wrong with the payload
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False

    def __init__(self, message_type: Optional[str], reason: str) -> None:
        self.message_type = message_type
        self.reason = reason
        super().__init__(
            f"Cannot decode message {message_type!r}: {reason}",
            details={"message_type": message_type, "reason": reason},
            error_code="MESSAGE_DECODE_ERROR",
        )


class RecordCorruptedError(BodyCountInfrastructureException):
    """
    Raised when a persisted progression blob cannot be read.

    Args:
        actor_id: Owner of the blob (``None`` when unknown)
        reason: What was wrong with the stored data
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    def __init__(self, actor_id: Any, reason: str) -> None:
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(
            f"Corrupted progression record for actor {actor_id}: {reason}",
            details={"actor_id": str(actor_id), "reason": reason},
            error_code="RECORD_CORRUPTED",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """
    Check if an exception represents a transient error that can be retried.

    Domain exceptions carry the same `is_retryable` flag.

    Args:
        exc: Exception to check

    Returns:
        True if error is retryable, False otherwise.
    """
    return bool(getattr(exc, "is_retryable", False))


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """
    Get the severity level of an exception for logging.

    Domain exceptions expose the same `severity` attribute and are honoured
    here as well.
    """
    severity = getattr(exc, "severity", None)
    if isinstance(severity, ErrorSeverity):
        return severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    severity = get_error_severity(exc)
    return severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
