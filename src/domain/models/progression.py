"""
Progression Domain Model for BodyCount.

Purpose
-------
Rich domain model for one actor's durable reward progression: the
monotonic kill counter, the number of milestone rewards already committed,
and the append-only audit history of every grant and revoke.

This is separate from the database model (`ProgressionRow`), which is an
anemic schema. Repositories convert between the blob / row form and this
aggregate.

Responsibilities
----------------
- Enforce that `counter` never decreases
- Enforce that `milestones_granted` only ever grows, one reward at a time
- Keep `history` append-only and in commit order
- Serialize to / from the versioned persistence blob (with legacy migration)
- Emit domain events for accepted counter advances and committed rewards

Non-Responsibilities
--------------------
- Milestone math and policy checks (handled by ProgressionService)
- Persistence I/O (handled by repositories)

Usage Example
-------------
>>> record = ProgressionRecord.new("player-1")
>>> record.advance_counter(1200)
True
>>> record.record_reward(RewardEvent("IRON_GUT", RewardDirection.GRANT, "uncommon", 12.5))
>>> record.milestones_granted
1
>>> [e.event_name for e in record.clear_domain_events()]
['progression.counter_synced', 'progression.reward_granted']
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from src.core.exceptions import RecordCorruptedError
from src.domain.models.base import (
    AggregateRoot,
    DomainValidationError,
    validate_non_negative,
)

BLOB_SCHEMA_VERSION = 1

_LEGACY_ACTIONS = {"added": "grant", "removed": "revoke"}


# ============================================================================
# VALUE OBJECTS
# ============================================================================


class RewardDirection(str, Enum):
    """Whether a reward added an item to the actor or took one away."""

    GRANT = "grant"
    REVOKE = "revoke"


@dataclass(frozen=True)
class RewardEvent:
    """
    Immutable audit entry for one committed reward.

    Attributes
    ----------
    item_id : str
        Catalog identifier of the item (e.g. ``"FAST_LEARNER"``)
    direction : RewardDirection
        GRANT for an earned item, REVOKE for a removed one
    rarity_tier : str
        ``common`` / ``uncommon`` / ``rare`` / ``veryRare``
    timestamp : float
        Host clock value at commit time (world hours or epoch seconds)
    """

    item_id: str
    direction: RewardDirection
    rarity_tier: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "direction": self.direction.value,
            "rarity_tier": self.rarity_tier,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RewardEvent:
        """
        Build an event from its persisted form.

        Raises
        ------
        KeyError, ValueError, TypeError
            On missing or malformed fields; callers wrap these.
        """
        item_id = data["item_id"]
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("item_id must be a non-empty string")
        return cls(
            item_id=item_id,
            direction=RewardDirection(data["direction"]),
            rarity_tier=str(data.get("rarity_tier", "common")),
            timestamp=float(data.get("timestamp", 0.0)),
        )

    @classmethod
    def from_legacy_dict(cls, data: Mapping[str, Any]) -> RewardEvent:
        """Build an event from a version-0 ``traitHistory`` entry."""
        action = data["action"]
        if action not in _LEGACY_ACTIONS:
            raise ValueError(f"unknown legacy action {action!r}")
        return cls.from_dict(
            {
                "item_id": data["trait"],
                "direction": _LEGACY_ACTIONS[action],
                "rarity_tier": data.get("rarity", "common"),
                "timestamp": data.get("timestamp", 0.0),
            }
        )


# ============================================================================
# AGGREGATE
# ============================================================================


class ProgressionRecord(AggregateRoot):
    """
    Durable progression state for one actor.

    The record never goes backwards: `counter` is monotonically
    non-decreasing, `milestones_granted` only grows through
    `record_reward()`, and `history` is append-only.
    """

    def __init__(
        self,
        actor_id: str,
        counter: int = 0,
        milestones_granted: int = 0,
        history: Iterable[RewardEvent] = (),
    ) -> None:
        super().__init__(actor_id)
        validate_non_negative(counter, "counter")
        validate_non_negative(milestones_granted, "milestones_granted")
        self._counter = counter
        self._milestones_granted = milestones_granted
        self._history: Tuple[RewardEvent, ...] = tuple(history)

    @classmethod
    def new(cls, actor_id: str) -> ProgressionRecord:
        return cls(actor_id)

    # ------------------------------------------------------------------ #
    # Read-only state
    # ------------------------------------------------------------------ #

    @property
    def actor_id(self) -> str:
        return self._id  # type: ignore[return-value]

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def milestones_granted(self) -> int:
        return self._milestones_granted

    @property
    def history(self) -> Tuple[RewardEvent, ...]:
        return self._history

    def has_granted(self, item_id: str) -> bool:
        return any(
            e.item_id == item_id and e.direction is RewardDirection.GRANT
            for e in self._history
        )

    def has_revoked(self, item_id: str) -> bool:
        return any(
            e.item_id == item_id and e.direction is RewardDirection.REVOKE
            for e in self._history
        )

    # ------------------------------------------------------------------ #
    # Business logic
    # ------------------------------------------------------------------ #

    def advance_counter(self, value: int) -> bool:
        """
        Move the counter forward to `value`.

        Returns
        -------
        bool
            True if the counter changed, False if `value` equals it.

        Raises
        ------
        DomainValidationError
            If `value` is lower than the current counter.
        """
        validate_non_negative(value, "counter")
        if value < self._counter:
            raise DomainValidationError(
                f"counter cannot decrease ({self._counter} -> {value})",
                field="counter",
            )
        if value == self._counter:
            return False

        previous = self._counter
        self._counter = value
        self.add_domain_event(
            "progression.counter_synced",
            {
                "actor_id": self.actor_id,
                "previous_counter": previous,
                "counter": value,
            },
        )
        return True

    def record_reward(self, event: RewardEvent) -> None:
        """Commit one reward: bump the granted count and append to history."""
        self._milestones_granted += 1
        self._history = self._history + (event,)
        self.add_domain_event(
            "progression.reward_granted",
            {
                "actor_id": self.actor_id,
                "milestones_granted": self._milestones_granted,
                **event.to_dict(),
            },
        )

    def recent_history(self, limit: int) -> Tuple[RewardEvent, ...]:
        """Newest-first slice of the history."""
        if limit <= 0:
            return ()
        return tuple(reversed(self._history[-limit:]))

    # ------------------------------------------------------------------ #
    # Persistence form
    # ------------------------------------------------------------------ #

    def to_blob(self) -> Dict[str, Any]:
        return {
            "schema_version": BLOB_SCHEMA_VERSION,
            "counter": self._counter,
            "milestones_granted": self._milestones_granted,
            "history": [e.to_dict() for e in self._history],
        }

    @classmethod
    def from_blob(
        cls, actor_id: str, blob: Optional[Mapping[str, Any]]
    ) -> ProgressionRecord:
        """
        Rebuild a record from its persisted blob.

        A missing blob yields a fresh record. Blobs without a
        ``schema_version`` are treated as version 0 (``kills`` /
        ``rewardsGiven`` / ``traitHistory``) and migrated.

        Raises
        ------
        RecordCorruptedError
            If the blob is not a mapping, comes from a newer schema, or holds
            malformed values.
        """
        if blob is None:
            return cls.new(actor_id)
        if not isinstance(blob, Mapping):
            raise RecordCorruptedError(actor_id, f"blob is {type(blob).__name__}, not a mapping")

        version = blob.get("schema_version", 0)
        if version not in (0, BLOB_SCHEMA_VERSION):
            raise RecordCorruptedError(actor_id, f"unsupported schema_version {version!r}")

        try:
            if version == 0:
                counter = int(blob.get("kills", 0) or 0)
                granted = int(blob.get("rewardsGiven", 0) or 0)
                history = [
                    RewardEvent.from_legacy_dict(entry)
                    for entry in (blob.get("traitHistory") or [])
                ]
            else:
                counter = blob["counter"]
                granted = blob["milestones_granted"]
                history = [RewardEvent.from_dict(entry) for entry in blob.get("history") or []]
            return cls(actor_id, counter, granted, history)
        except (KeyError, TypeError, ValueError, DomainValidationError) as exc:
            raise RecordCorruptedError(actor_id, f"{type(exc).__name__}: {exc}") from exc

    def __repr__(self) -> str:
        return (
            f"ProgressionRecord(actor_id={self.actor_id!r}, counter={self._counter}, "
            f"milestones_granted={self._milestones_granted}, history={len(self._history)})"
        )
