"""
Wire messages between client schedulers and the authority.

Every message is a frozen dataclass with a camelCase dict payload. The
command name travels next to the payload, the way host mod channels send
``(module, command, args)`` triples.

Client -> authority: `SyncCounter`, `RequestReward`
Authority -> client: `CounterSynced`, `RewardGranted`, `BatchComplete`,
`RewardError`, `NoRewardAvailable`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Tuple, Type, Union

from src.core.exceptions import MessageDecodeError
from src.domain.models.progression import RewardDirection
from src.modules.rewards.constants import MAX_COUNTER


def _int_field(command: str, payload: Mapping[str, Any], key: str, default: Any = None) -> int:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MessageDecodeError(command, f"{key} must be a number, got {value!r}")
    if value != value or value in (float("inf"), float("-inf")):
        raise MessageDecodeError(command, f"{key} must be finite")
    if abs(value) > MAX_COUNTER:
        raise MessageDecodeError(command, f"{key} is out of range, got {value!r}")
    return int(value)


def _str_field(command: str, payload: Mapping[str, Any], key: str, default: Any = None) -> str:
    value = payload.get(key, default)
    if not isinstance(value, str) or not value:
        raise MessageDecodeError(command, f"{key} must be a non-empty string, got {value!r}")
    return value


# ============================================================================
# Client -> authority
# ============================================================================


@dataclass(frozen=True)
class SyncCounter:
    COMMAND: ClassVar[str] = "SyncCounter"

    counter: int

    def to_payload(self) -> Dict[str, Any]:
        return {"counter": self.counter}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SyncCounter:
        return cls(_int_field(cls.COMMAND, payload, "counter"))


@dataclass(frozen=True)
class RequestReward:
    COMMAND: ClassVar[str] = "RequestReward"

    counter: int

    def to_payload(self) -> Dict[str, Any]:
        return {"counter": self.counter}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RequestReward:
        return cls(_int_field(cls.COMMAND, payload, "counter"))


# ============================================================================
# Authority -> client
# ============================================================================


@dataclass(frozen=True)
class CounterSynced:
    COMMAND: ClassVar[str] = "CounterSynced"

    counter: int
    milestones_granted: int

    def to_payload(self) -> Dict[str, Any]:
        return {"counter": self.counter, "milestonesGranted": self.milestones_granted}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> CounterSynced:
        return cls(
            _int_field(cls.COMMAND, payload, "counter"),
            _int_field(cls.COMMAND, payload, "milestonesGranted"),
        )


@dataclass(frozen=True)
class RewardGranted:
    COMMAND: ClassVar[str] = "RewardGranted"

    item_id: str
    direction: RewardDirection
    rarity_tier: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "itemId": self.item_id,
            "direction": self.direction.value,
            "rarityTier": self.rarity_tier,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RewardGranted:
        raw_direction = payload.get("direction")
        try:
            direction = RewardDirection(raw_direction)
        except ValueError as exc:
            raise MessageDecodeError(cls.COMMAND, f"unknown direction {raw_direction!r}") from exc
        return cls(
            _str_field(cls.COMMAND, payload, "itemId"),
            direction,
            _str_field(cls.COMMAND, payload, "rarityTier", "common"),
        )


@dataclass(frozen=True)
class BatchComplete:
    COMMAND: ClassVar[str] = "BatchComplete"

    total_granted: int
    remaining_milestones: int
    exhausted: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "totalGranted": self.total_granted,
            "remainingMilestones": self.remaining_milestones,
            "exhausted": self.exhausted,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> BatchComplete:
        return cls(
            _int_field(cls.COMMAND, payload, "totalGranted"),
            _int_field(cls.COMMAND, payload, "remainingMilestones", 0),
            bool(payload.get("exhausted", False)),
        )


@dataclass(frozen=True)
class RewardError:
    COMMAND: ClassVar[str] = "RewardError"

    reason_code: str
    message: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {"reasonCode": self.reason_code, "message": self.message}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RewardError:
        return cls(
            _str_field(cls.COMMAND, payload, "reasonCode"),
            str(payload.get("message", "")),
        )


@dataclass(frozen=True)
class NoRewardAvailable:
    COMMAND: ClassVar[str] = "NoRewardAvailable"

    reason_code: str = "no_reward_available"

    def to_payload(self) -> Dict[str, Any]:
        return {"reasonCode": self.reason_code}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> NoRewardAvailable:
        return cls(str(payload.get("reasonCode", "no_reward_available")))


ClientMessage = Union[SyncCounter, RequestReward]
ServerMessage = Union[CounterSynced, RewardGranted, BatchComplete, RewardError, NoRewardAvailable]

_CLIENT_TYPES: Dict[str, Type[Any]] = {cls.COMMAND: cls for cls in (SyncCounter, RequestReward)}
_SERVER_TYPES: Dict[str, Type[Any]] = {
    cls.COMMAND: cls
    for cls in (CounterSynced, RewardGranted, BatchComplete, RewardError, NoRewardAvailable)
}


def encode_message(message: Union[ClientMessage, ServerMessage]) -> Tuple[str, Dict[str, Any]]:
    return message.COMMAND, message.to_payload()


def _decode(registry: Mapping[str, Type[Any]], command: Any, payload: Any) -> Any:
    message_type = registry.get(command) if isinstance(command, str) else None
    if message_type is None:
        raise MessageDecodeError(str(command), "unknown command")
    if not isinstance(payload, Mapping):
        raise MessageDecodeError(command, f"payload must be a mapping, got {type(payload).__name__}")
    return message_type.from_payload(payload)


def decode_client_message(command: Any, payload: Any) -> ClientMessage:
    """
    Raises:
        MessageDecodeError: Unknown command or malformed payload
    """
    return _decode(_CLIENT_TYPES, command, payload)


def decode_server_message(command: Any, payload: Any) -> ServerMessage:
    """
    Raises:
        MessageDecodeError: Unknown command or malformed payload
    """
    return _decode(_SERVER_TYPES, command, payload)
