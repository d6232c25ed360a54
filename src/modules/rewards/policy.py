"""
Reward policy: the server-configured knobs that drive milestone math and
reward selection.

A `RewardPolicy` is an immutable snapshot. Policy sources hand out a fresh
snapshot at every decision point, so operators can change settings between
ticks while one milestone computation always sees one consistent policy.

Parsing is lenient: malformed values are logged and replaced by defaults,
because a typo in a server settings file must not take the reward system down.
Legacy numeric encodings (scaling ``1``/``2``, priority ``1``/``2``/``3``) are
accepted alongside the named forms.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Protocol

from src.core.config.manager import ConfigManager
from src.core.logging.logger import get_logger
from src.modules.rewards import constants

logger = get_logger(__name__)


class ScalingMode(str, Enum):
    LINEAR = "linear"
    PROGRESSIVE = "progressive"


class RewardPriority(IntEnum):
    POSITIVE_FIRST = 1
    NEGATIVE_FIRST = 2
    RANDOM_PER_REWARD = 3


_SCALING_ALIASES = {
    "linear": ScalingMode.LINEAR,
    "1": ScalingMode.LINEAR,
    "progressive": ScalingMode.PROGRESSIVE,
    "2": ScalingMode.PROGRESSIVE,
}

_PRIORITY_ALIASES = {
    "positive_first": RewardPriority.POSITIVE_FIRST,
    "1": RewardPriority.POSITIVE_FIRST,
    "negative_first": RewardPriority.NEGATIVE_FIRST,
    "2": RewardPriority.NEGATIVE_FIRST,
    "random": RewardPriority.RANDOM_PER_REWARD,
    "random_per_reward": RewardPriority.RANDOM_PER_REWARD,
    "3": RewardPriority.RANDOM_PER_REWARD,
}

_PRIORITY_LABELS = {
    RewardPriority.POSITIVE_FIRST: "Gain Positive First",
    RewardPriority.NEGATIVE_FIRST: "Remove Negative First",
    RewardPriority.RANDOM_PER_REWARD: "Random",
}


# ============================================================================
# Lenient parsing helpers
# ============================================================================


def _parse_bool(raw: Mapping[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0", "yes", "no"):
        return value.strip().lower() in ("true", "1", "yes")
    logger.warning(
        "Invalid boolean reward setting, using default",
        extra={"config_key": key, "value": value, "default_value": default},
    )
    return default


def _parse_int(raw: Mapping[str, Any], key: str, default: int, minimum: int) -> int:
    value = raw.get(key, default)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = None
    if parsed is None or isinstance(value, bool) or parsed < minimum:
        logger.warning(
            "Invalid integer reward setting, using default",
            extra={"config_key": key, "value": value, "default_value": default},
        )
        return default
    return parsed


def _parse_alias(raw: Mapping[str, Any], key: str, aliases: Mapping[str, Any], default: Any) -> Any:
    value = raw.get(key)
    if value is None:
        return default
    resolved = aliases.get(str(getattr(value, "value", value)).strip().lower())
    if resolved is None:
        logger.warning(
            "Unknown reward setting value, using default",
            extra={"config_key": key, "value": value, "default_value": str(default)},
        )
        return default
    return resolved


# ============================================================================
# Policy snapshot
# ============================================================================


@dataclass(frozen=True)
class RewardPolicy:
    """
    Immutable reward policy snapshot.

    Attributes
    ----------
    kill_unit:
        Counter units per milestone (the linear step, and the base step of
        progressive scaling). At least 1.
    scaling:
        LINEAR or PROGRESSIVE milestone spacing.
    progressive_factor:
        Growth factor F of progressive scaling. Finite; negative values clamp
        to 0.
    positive_enabled / negative_enabled:
        Whether grantable / revocable rewards are handed out at all.
    priority:
        Which pool is tried first for each reward.
    grant_missed_opportunities:
        Hand out every owed milestone in one batch instead of one per request.
    allowed_items:
        Per-item switches. Items missing from the mapping are allowed.
    """

    kill_unit: int = constants.DEFAULT_KILL_UNIT
    scaling: ScalingMode = ScalingMode.LINEAR
    progressive_factor: float = constants.DEFAULT_PROGRESSIVE_FACTOR
    positive_enabled: bool = True
    negative_enabled: bool = True
    priority: RewardPriority = RewardPriority.POSITIVE_FIRST
    grant_missed_opportunities: bool = False
    allowed_items: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if isinstance(self.kill_unit, bool) or not isinstance(self.kill_unit, int) or self.kill_unit < 1:
            raise ValueError(f"kill_unit must be a positive integer, got {self.kill_unit!r}")
        if not math.isfinite(self.progressive_factor):
            raise ValueError(f"progressive_factor must be finite, got {self.progressive_factor!r}")
        if self.progressive_factor < 0:
            object.__setattr__(self, "progressive_factor", 0.0)
        if not isinstance(self.allowed_items, MappingProxyType):
            object.__setattr__(self, "allowed_items", MappingProxyType(dict(self.allowed_items)))

    @property
    def any_enabled(self) -> bool:
        return self.positive_enabled or self.negative_enabled

    def is_item_allowed(self, item_id: str) -> bool:
        return self.allowed_items.get(item_id) is not False

    @property
    def scaling_label(self) -> str:
        if self.scaling is ScalingMode.PROGRESSIVE:
            return f"Progressive (x{self.progressive_factor:.1f})"
        return "Linear"

    @property
    def priority_label(self) -> str:
        return _PRIORITY_LABELS[self.priority]

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> RewardPolicy:
        """
        Build a policy from the ``rewards`` config section.

        Examples
        --------
        >>> RewardPolicy.from_mapping({"kill_unit": 500, "scaling": "progressive"}).scaling
        <ScalingMode.PROGRESSIVE: 'progressive'>
        """
        raw = raw or {}

        factor_raw = raw.get("progressive_factor", constants.DEFAULT_PROGRESSIVE_FACTOR)
        try:
            factor = float(factor_raw)
            if not math.isfinite(factor):
                raise ValueError(factor_raw)
        except (TypeError, ValueError):
            logger.warning(
                "Invalid progressive_factor, using default",
                extra={"value": factor_raw},
            )
            factor = constants.DEFAULT_PROGRESSIVE_FACTOR

        allowed_raw = raw.get("allowed_items") or {}
        if not isinstance(allowed_raw, Mapping):
            logger.warning(
                "allowed_items must be a mapping; ignoring",
                extra={"value_type": type(allowed_raw).__name__},
            )
            allowed_raw = {}
        allowed = {str(item): value is not False for item, value in allowed_raw.items()}

        return cls(
            kill_unit=_parse_int(raw, "kill_unit", constants.DEFAULT_KILL_UNIT, minimum=1),
            scaling=_parse_alias(raw, "scaling", _SCALING_ALIASES, ScalingMode.LINEAR),
            progressive_factor=factor,
            positive_enabled=_parse_bool(raw, "positive_enabled", True),
            negative_enabled=_parse_bool(raw, "negative_enabled", True),
            priority=_parse_alias(raw, "priority", _PRIORITY_ALIASES, RewardPriority.POSITIVE_FIRST),
            grant_missed_opportunities=_parse_bool(raw, "grant_missed_opportunities", False),
            allowed_items=allowed,
        )


@dataclass(frozen=True)
class SchedulerSettings:
    """Pacing of the client scheduler, in host ticks."""

    pending_delay_ticks: int = constants.PENDING_DELAY_TICKS
    notification_delay_ticks: int = constants.NOTIFICATION_DELAY_TICKS
    final_notice_delay_ticks: int = constants.FINAL_NOTICE_DELAY_TICKS
    proximity_floor: int = constants.PROXIMITY_FLOOR
    proximity_ceiling: int = constants.PROXIMITY_CEILING
    proximity_fraction: float = constants.PROXIMITY_FRACTION

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> SchedulerSettings:
        raw = raw or {}
        fraction_raw = raw.get("proximity_fraction", constants.PROXIMITY_FRACTION)
        try:
            fraction = max(0.0, float(fraction_raw))
        except (TypeError, ValueError):
            fraction = constants.PROXIMITY_FRACTION
        return cls(
            pending_delay_ticks=_parse_int(raw, "pending_delay_ticks", constants.PENDING_DELAY_TICKS, 0),
            notification_delay_ticks=_parse_int(
                raw, "notification_delay_ticks", constants.NOTIFICATION_DELAY_TICKS, 0
            ),
            final_notice_delay_ticks=_parse_int(
                raw, "final_notice_delay_ticks", constants.FINAL_NOTICE_DELAY_TICKS, 0
            ),
            proximity_floor=_parse_int(raw, "proximity_floor", constants.PROXIMITY_FLOOR, 0),
            proximity_ceiling=_parse_int(raw, "proximity_ceiling", constants.PROXIMITY_CEILING, 0),
            proximity_fraction=fraction,
        )

    @classmethod
    def from_config(cls) -> SchedulerSettings:
        return cls.from_mapping(ConfigManager.get("rewards.scheduler", {}))


# ============================================================================
# Policy sources
# ============================================================================


class PolicySource(Protocol):
    def current(self) -> RewardPolicy: ...


class StaticPolicySource:
    """Always returns the same policy. Used by tests and embedded hosts."""

    def __init__(self, policy: Optional[RewardPolicy] = None) -> None:
        self.policy = policy or RewardPolicy()

    def current(self) -> RewardPolicy:
        return self.policy


class ConfigPolicySource:
    """Reads a fresh policy from ``ConfigManager`` on every call."""

    def __init__(self, key: str = "rewards") -> None:
        self.key = key

    def current(self) -> RewardPolicy:
        return RewardPolicy.from_mapping(ConfigManager.get(self.key, {}))
