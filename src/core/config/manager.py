"""
ConfigManager: dynamic, YAML-backed configuration access for BodyCount (2025).

Purpose
-------
- Provide hierarchical, dot-notation access to tunable configuration values.
- Back configuration with YAML defaults plus in-process overrides.
- Allow server operators (and tests) to change reward policy between ticks
  without restarting the host.

Responsibilities
----------------
- Load and deep-merge every YAML file under `Config.CONFIG_DIR`.
- Overlay runtime overrides on top of YAML defaults.
- Serve reads from an in-memory cache with lightweight metrics.
- Run registered validators on writes.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; `set()` stores **overrides**.
- Reads never fail: a missing key or a broken cache returns the default.
- The manager is a class-level singleton; all methods are classmethods and
  guarded by a re-entrant lock because hosts may call from several threads.

Dependencies
------------
- PyYAML (`yaml.safe_load`) for the defaults files.
- `src.core.config.config.Config` for the config directory.
- `src.core.logging.logger.get_logger` for structured logging.
"""

from __future__ import annotations

import copy
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, MutableMapping, Optional

import yaml

from src.core.config.config import Config
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Exceptions
# ============================================================================


class ConfigManagerError(RuntimeError):
    """Base error type for ConfigManager-related failures."""


class ConfigWriteError(ConfigManagerError):
    """Raised when a configuration write or validation fails."""


__all__ = ["ConfigManager", "ConfigManagerError", "ConfigWriteError"]


@dataclass
class ConfigMetrics:
    gets: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    sets: int = 0
    errors: int = 0
    total_get_time_ms: float = 0.0


# ============================================================================
# ConfigManager
# ============================================================================


class ConfigManager:
    """
    Dynamic configuration with YAML defaults and runtime overrides.

    Features
    --------
    - Hierarchical config access with dot notation (e.g. `"rewards.kill_unit"`).
    - Runtime overrides that survive until `reset()`.
    - Validators per dot key, applied on write.
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _cache: Dict[str, Any] = {}

    _initialized: bool = False
    _config_dir: Optional[Path] = None
    _lock = threading.RLock()

    _validators: Dict[str, Callable[[Any], Any]] = {}
    _metrics: ConfigMetrics = ConfigMetrics()

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> Dict[str, Any]:
        """
        Load all YAML config files from `config_dir` into a merged dict.

        Files are merged in sorted path order so later files win on
        conflicting keys. Unreadable files are logged and skipped.
        """
        merged: Dict[str, Any] = {}

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return merged

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                cls._metrics.errors += 1
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(merged, data)
                loaded_count += 1
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(config_dir))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "root_type": type(data).__name__,
                    },
                )

        logger.info(
            "YAML configs loaded",
            extra={"yaml_file_count": loaded_count, "config_dir": str(config_dir)},
        )
        return merged

    @classmethod
    def _rebuild_cache(cls) -> None:
        cache: Dict[str, Any] = copy.deepcopy(cls._defaults)
        cls._deep_merge_dict(cache, cls._overrides)
        cls._cache = cache

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load YAML defaults (idempotent unless a different directory is given).

        Parameters
        ----------
        config_dir:
            Directory to scan. Defaults to `Config.CONFIG_DIR`.
        """
        target = Path(config_dir) if config_dir is not None else Path(Config.CONFIG_DIR)

        with cls._lock:
            if cls._initialized and cls._config_dir == target:
                return

            start = time.perf_counter()
            cls._defaults = cls._load_yaml_configs(target)
            cls._config_dir = target
            cls._rebuild_cache()
            cls._initialized = True

            logger.info(
                "ConfigManager initialized",
                extra={
                    "top_level_keys": sorted(cls._cache.keys()),
                    "override_count": len(cls._overrides),
                    "duration_ms": (time.perf_counter() - start) * 1000,
                },
            )

    @classmethod
    def reset(cls) -> None:
        """Drop overrides, defaults and validators. Intended for tests."""
        with cls._lock:
            cls._defaults = {}
            cls._overrides = {}
            cls._cache = {}
            cls._validators = {}
            cls._initialized = False
            cls._config_dir = None
            cls._metrics = ConfigMetrics()

    # =========================================================================
    # VALIDATION HOOKS
    # =========================================================================

    @classmethod
    def register_validator(cls, key: str, validator: Callable[[Any], Any]) -> None:
        """
        Register a validator for a specific configuration key path.

        Validators are invoked on write and must either return a (possibly
        transformed) value, or raise an exception to block the write.
        """
        cls._validators[key] = validator
        logger.info(
            "ConfigManager validator registered",
            extra={
                "config_key": key,
                "validator": getattr(validator, "__name__", "anonymous"),
            },
        )

    @classmethod
    def _apply_validator(cls, key: str, value: Any) -> Any:
        validator = cls._validators.get(key)
        if not validator:
            return value

        try:
            return validator(value)
        except Exception as exc:
            cls._metrics.errors += 1
            logger.error(
                "Config validation failed",
                extra={
                    "config_key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise ConfigWriteError(f"Validation failed for config key '{key}'") from exc

    # =========================================================================
    # READ API
    # =========================================================================

    @staticmethod
    def _traverse(source: Dict[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Returns a deep copy for dict and list values so callers cannot mutate
        the cache.

        Examples
        --------
        >>> ConfigManager.get("rewards.kill_unit", 1000)
        1000
        """
        start_time = time.perf_counter()
        cls._metrics.gets += 1

        if not cls._initialized:
            cls.initialize()

        try:
            with cls._lock:
                value = cls._traverse(cls._cache, key)
            if value is None:
                cls._metrics.cache_misses += 1
                return default
            cls._metrics.cache_hits += 1
            if isinstance(value, (dict, list)):
                return copy.deepcopy(value)
            return value
        finally:
            cls._metrics.total_get_time_ms += (time.perf_counter() - start_time) * 1000

    @classmethod
    def get_all_keys(cls) -> List[str]:
        if not cls._initialized:
            cls.initialize()
        return sorted(cls._cache.keys())

    # =========================================================================
    # WRITE API
    # =========================================================================

    @classmethod
    def set(cls, key: str, value: Any, *, modified_by: str = "runtime") -> None:
        """
        Override a configuration value at runtime.

        Parameters
        ----------
        key:
            Dot-notation path; intermediate dictionaries are created.
        value:
            New value, passed through the key's validator if one exists.
        modified_by:
            Free-form actor label for the audit log line.

        Raises
        ------
        ConfigWriteError
            If the key is empty or the validator rejects the value.
        """
        if not key or any(not part for part in key.split(".")):
            raise ConfigWriteError(f"Invalid config key '{key}'")

        if not cls._initialized:
            cls.initialize()

        final_value = cls._apply_validator(key, value)

        with cls._lock:
            old_value = cls._traverse(cls._cache, key)
            node = cls._overrides
            parts = key.split(".")
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = copy.deepcopy(final_value)
            cls._rebuild_cache()
            cls._metrics.sets += 1

        logger.info(
            "Configuration value updated",
            extra={
                "config_key": key,
                "old_value": old_value,
                "new_value": final_value,
                "modified_by": modified_by,
            },
        )

    @classmethod
    def clear_overrides(cls) -> None:
        with cls._lock:
            cls._overrides = {}
            cls._rebuild_cache()

    # =========================================================================
    # METRICS
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Dict[str, Any]:
        snapshot = asdict(cls._metrics)
        gets = snapshot["gets"] or 1
        snapshot["avg_get_time_ms"] = snapshot["total_get_time_ms"] / gets
        snapshot["initialized"] = cls._initialized
        snapshot["override_count"] = len(cls._overrides)
        return snapshot
