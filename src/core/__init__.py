"""
Core infrastructure layer for BodyCount.

Purpose
-------
Provide a single import surface for the core infrastructure subsystems:

- Configuration management (Config, ConfigManager)
- Database subsystem (DatabaseService)
- Event bus (EventBus)
- Logging (structured logging, logger factory)
- Infrastructure exceptions

Design Decisions
----------------
- This module is intentionally thin: no logic, no configuration, no I/O.
- Domain exceptions are not re-exported here; gameplay modules import them
  from `src.modules.shared`.
"""

from __future__ import annotations

from src.core.config import Config, ConfigManager
from src.core.database import DatabaseService
from src.core.event import EventBus
from src.core.exceptions import (
    BodyCountInfrastructureException,
    ConfigurationError,
    DatabaseError,
    ErrorSeverity,
    HostError,
    MessageDecodeError,
    RecordCorruptedError,
)
from src.core.logging import LogContext, get_logger, setup_logging

__all__ = [
    # Configuration
    "Config",
    "ConfigManager",
    # Database
    "DatabaseService",
    # Events
    "EventBus",
    # Logging
    "setup_logging",
    "get_logger",
    "LogContext",
    # Infrastructure Exceptions
    "BodyCountInfrastructureException",
    "ConfigurationError",
    "DatabaseError",
    "HostError",
    "MessageDecodeError",
    "RecordCorruptedError",
    "ErrorSeverity",
]
