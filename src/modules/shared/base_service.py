"""
Base Service Foundation

Purpose
-------
Provides the foundational class for BodyCount services. Services implement
reward rules, talk to repositories and host collaborators, and hand domain
events to the EventBus.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Event emission helper (async, the bus is asyncio-based)
- Severity-aware error logging

What this class does NOT do:
- Manage database transactions (that's DatabaseService's job)
- Contain reward-specific logic

Usage
-----
    class ProgressionService(BaseService):
        def __init__(self, repository, catalog, ...):
            super().__init__(get_logger(__name__))
            self.repository = repository
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from src.core.exceptions import get_error_severity, is_transient_error, should_alert

if TYPE_CHECKING:
    from logging import Logger

    from src.core.event.bus import EventBus


class BaseService:
    """
    Base class for domain services.

    Args:
        logger: Structured logger instance
        event_bus: Optional event bus for cross-module communication
    """

    def __init__(
        self,
        logger: Logger,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._events = event_bus
        self.log = logger

    @property
    def event_bus(self) -> Optional[EventBus]:
        return self._events

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Publish a domain event. A service built without a bus drops it.
        """
        if self._events is None:
            self.log.debug(
                "No event bus configured; event dropped",
                extra={"event_name": event_type},
            )
            return
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """
        Log a service error with full context.

        Errors whose severity warrants an alert go out at ERROR, the rest
        at WARNING.

        Args:
            operation: Name of the operation that failed
            error: The exception that occurred
            **context: Additional context data
        """
        level = logging.ERROR if should_alert(error) else logging.WARNING
        self.log.log(
            level,
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "severity": get_error_severity(error).value,
                "retryable": is_transient_error(error),
                **context,
            },
        )
