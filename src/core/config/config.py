"""
Static configuration management for BodyCount (2025).

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles non-dynamic configuration that is set at process startup.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Report where each setting came from

Non-Responsibilities
--------------------
- Reward policy and scheduler tunables (handled by ConfigManager)
- Runtime configuration changes (except safe reload)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Auto-loads on module import via Config.validate()
- A load report records which values came from the environment
- Directory paths relative to project root for portability

Configuration Categories
------------------------
1. Environment: environment type, debug mode
2. Logging: level, JSON output, colors, optional rotating file
3. Database: SQLAlchemy URL and echo flag
4. Directories: logs and YAML config directory

Dependencies
------------
- python-dotenv: Environment variable loading
- pathlib: Cross-platform path handling
- logging: Basic logging (bootstrap only)

Environment Variables
---------------------
All optional (with defaults):
- ENVIRONMENT: Environment type (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console logs (default: on in production only)
- LOG_COLORS: Colored console logs in development (default: True)
- LOG_TO_FILE: Enable the daily rotating JSON file (default: False)
- DATABASE_URL: SQLAlchemy URL (default: local SQLite file)
- DATABASE_ECHO: Echo SQL statements (default: False)
- CONFIG_DIR: Directory scanned for YAML defaults (default: <root>/config)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# Enums and Constants
# ============================================================================


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized yet during bootstrap
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


_TRUE_VALUES = frozenset({"true", "yes", "1", "on"})
_FALSE_VALUES = frozenset({"false", "no", "0", "off"})


# ============================================================================
# Configuration Load Report
# ============================================================================


class _ConfigLoadReport:
    """Where each static setting came from during the last `Config.load()`."""

    def __init__(self):
        self.sources: Dict[str, str] = {}
        self.problems: Dict[str, str] = {}
        self.last_reload: Optional[str] = None

    def note(self, key: str, source: str) -> None:
        self.sources[key] = source

    def reject(self, key: str, problem: str) -> None:
        self.sources[key] = "default"
        self.problems[key] = problem
        logging.warning(problem)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.sources),
            "from_environment": [k for k, s in self.sources.items() if s == "env"],
            "from_defaults": [k for k, s in self.sources.items() if s == "default"],
            "validation_errors": len(self.problems),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for the BodyCount reward engine.

    Usage
    -----
    >>> db_url = Config.DATABASE_URL
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    >>> summary = Config.get_config_summary()
    """

    _report: _ConfigLoadReport = _ConfigLoadReport()
    _validated: bool = False

    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    CONFIG_DIR = PROJECT_ROOT / "config"

    DATABASE_URL: str = "sqlite:///bodycount.db"
    DATABASE_ECHO: bool = False

    # =========================================================================
    # Environment Readers
    # =========================================================================

    @classmethod
    def _raw(cls, key: str) -> Optional[str]:
        """Environment value with blank strings treated as unset."""
        value = os.getenv(key)
        if value is None or not value.strip():
            cls._report.note(key, "default")
            return None
        return value.strip()

    @classmethod
    def _read_str(cls, key: str, default: str) -> str:
        raw = cls._raw(key)
        if raw is None:
            return default
        cls._report.note(key, "env")
        return raw

    @classmethod
    def _read_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Read a boolean switch.

        Recognizes true/false, yes/no, 1/0 and on/off (case-insensitive).
        Anything else is reported and the default is kept.

        Example
        -------
        >>> Config._read_bool("DEBUG", False)
        False
        """
        raw = cls._raw(key)
        if raw is None:
            return default

        normalized = raw.lower()
        if normalized in _TRUE_VALUES:
            cls._report.note(key, "env")
            return True
        if normalized in _FALSE_VALUES:
            cls._report.note(key, "env")
            return False

        cls._report.reject(key, f"{key}='{raw}' is not a valid boolean, using default {default}")
        return default

    @classmethod
    def _read_dir(cls, key: str, default: Path) -> Path:
        """Directory path; relative values resolve against the project root."""
        path = Path(cls._read_str(key, str(default)))
        return path if path.is_absolute() else cls.PROJECT_ROOT / path

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables.

        Called on module import; call again to pick up changed environment
        variables (tests do this after monkeypatching).
        """
        cls._report = _ConfigLoadReport()

        cls.ENVIRONMENT = Environment.from_string(
            cls._read_str("ENVIRONMENT", "development")
        ).value
        cls.DEBUG = bool(cls._read_bool("DEBUG", False))

        cls.LOG_LEVEL = cls._read_str("LOG_LEVEL", "DEBUG" if cls.DEBUG else "INFO").upper()
        cls.LOG_JSON = cls._read_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._read_bool("LOG_COLORS", True))
        cls.LOG_TO_FILE = bool(cls._read_bool("LOG_TO_FILE", False))

        cls.LOGS_DIR = cls._read_dir("LOGS_DIR", cls.PROJECT_ROOT / "logs")
        cls.CONFIG_DIR = cls._read_dir("CONFIG_DIR", cls.PROJECT_ROOT / "config")

        cls.DATABASE_URL = cls._read_str("DATABASE_URL", "sqlite:///bodycount.db")
        cls.DATABASE_ECHO = bool(cls._read_bool("DATABASE_ECHO", False))

        cls._report.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Load and sanity-check configuration once per process.

        Raises
        ------
        ValueError:
            In production, when the configuration cannot be loaded.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)

        try:
            cls.load()

            if cls.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
                logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
                cls.LOG_LEVEL = "INFO"

            if cls.is_production() and cls.DATABASE_URL.startswith("sqlite"):
                logger.warning("Production environment is persisting progression to SQLite")
            if cls.is_production() and cls.DEBUG:
                logger.warning("DEBUG mode enabled in production!")

            cls._validated = True

        except Exception as e:
            logger.warning(f"Config validation warning (safe for tests): {e}")
            if cls.ENVIRONMENT.lower() == "production":
                logger.error("Configuration validation failed in production!")
                raise

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "production"

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_load_report(cls) -> Dict[str, Any]:
        return cls._report.get_summary()

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """
        Get non-sensitive configuration summary for debugging.

        Example
        -------
        >>> Config.get_config_summary()["environment"]
        'development'
        """
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "log_to_file": cls.LOG_TO_FILE,
            "database_backend": cls.DATABASE_URL.split(":", 1)[0],
            "config_dir": str(cls.CONFIG_DIR),
        }

    @classmethod
    def reload_safe_configs(cls) -> None:
        """
        Reload non-critical configuration values at runtime.

        Only the log level and debug flag are reloaded; storage settings
        require a restart.
        """
        logger = logging.getLogger(__name__)
        logger.info("Reloading safe configuration values...")

        cls.LOG_LEVEL = cls._read_str("LOG_LEVEL", cls.LOG_LEVEL).upper()
        cls.DEBUG = bool(cls._read_bool("DEBUG", cls.DEBUG))

        logger.info("Safe configuration values reloaded successfully")


# Auto-validate on import
Config.validate()
