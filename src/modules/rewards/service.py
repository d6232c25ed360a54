"""
Authoritative progression service.

Purpose
-------
Own every actor's `ProgressionRecord`: reconcile client-reported counters,
validate milestone requests, run weighted selection over the eligible pools
and commit rewards, one durable save per reward.

Responsibilities
----------------
- Anti-regression: the stored counter never decreases
- Milestone validation against the current policy snapshot
- Catch-up batches for missed milestones
- Priority-ordered pool traversal with fall-through on failed applies
- Conversion of domain failures into `RewardOutcome` codes

Non-Responsibilities
--------------------
- Wire messages and per-actor serialization (handled by AuthorityServer)
- Presentation (handled by snapshot.build_snapshot)

Design Notes
------------
- Domain exceptions are raised internally and caught at the public
  boundary, where they become `RewardOutcome` codes. Infrastructure errors
  (`DatabaseError`, `HostError`, `RecordCorruptedError`) propagate to the
  caller; AuthorityServer and LocalAuthority turn them into an
  `internal_error` reply.
- The actor's save is the source of truth, so every operation loads the
  record afresh. A new character that reuses an actor id starts from its own
  empty save, never from a previous character's state.
- Domain events raised by an operation are parked per actor until
  `drain_events()` collects them.
- Counter reconciliation is committed on its own, so a request that fails
  with MILESTONE_NOT_REACHED still keeps an advanced counter. Failure paths
  never touch `milestones_granted` or the history.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from src.core.exceptions import HostError
from src.core.logging.logger import LogContext, get_logger
from src.domain.models.base import DomainEvent
from src.domain.models.progression import ProgressionRecord, RewardDirection, RewardEvent
from src.modules.rewards.applicator import RewardApplicator
from src.modules.rewards.catalog import RewardCatalog
from src.modules.rewards.constants import MAX_COUNTER
from src.modules.rewards.formulas import milestone_threshold, milestones_reached
from src.modules.rewards.host import CounterSource, ItemStore
from src.modules.rewards.policy import PolicySource, RewardPolicy, RewardPriority, StaticPolicySource
from src.modules.rewards.repository import ProgressionRepository
from src.modules.rewards.selector import WeightedSelector
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    ApplyFailureError,
    BodyCountDomainException,
    CatalogExhaustedError,
    InvalidCounterReportError,
    MilestoneNotReachedError,
    RewardsDisabledError,
)

logger = get_logger(__name__)


class RewardOutcome(str, Enum):
    GRANTED = "granted"
    REWARDS_DISABLED = "rewards_disabled"
    MILESTONE_NOT_REACHED = "milestone_not_reached"
    NO_REWARD_AVAILABLE = "no_reward_available"
    APPLY_FAILED = "apply_failed"
    INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class BatchResult:
    """
    Result of one reward request.

    Attributes
    ----------
    outcome:
        GRANTED when at least one reward was committed, otherwise the reason.
    reason:
        Human-readable failure message (empty on success).
    total_granted:
        Rewards committed by this request.
    remaining_milestones:
        Milestones still owed after this request.
    events:
        The committed rewards, in commit order.
    counter / milestones_granted:
        The record's values after the request.
    exhausted:
        No eligible reward is left for the actor.
    """

    outcome: RewardOutcome
    total_granted: int = 0
    remaining_milestones: int = 0
    events: Tuple[RewardEvent, ...] = ()
    counter: int = 0
    milestones_granted: int = 0
    exhausted: bool = False
    reason: str = ""

    @property
    def granted(self) -> bool:
        return self.outcome is RewardOutcome.GRANTED


def _coerce_counter(value: Any) -> int:
    """
    Raises:
        InvalidCounterReportError: If `value` is not a finite number no
            larger than MAX_COUNTER
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCounterReportError(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidCounterReportError(value)
        value = math.floor(value)
    if value > MAX_COUNTER:
        raise InvalidCounterReportError(value, f"Reported counter exceeds {MAX_COUNTER}, got {value!r}")
    return max(0, int(value))


class ProgressionService(BaseService):
    """
    Authoritative store and reward engine for actor progression.

    Args:
        repository: Record persistence backend
        catalog: Resolved reward catalog
        items: Host item store, used for eligibility and mutations
        counters: Host counter source, consulted as the externally observed
            counter during reconciliation (optional)
        policies: Policy source read at every decision point
        rng: Random source for selection and coin flips
        clock: Timestamp source for reward events
        event_bus: Optional bus (events are published by AuthorityServer)
    """

    def __init__(
        self,
        repository: ProgressionRepository,
        catalog: RewardCatalog,
        items: ItemStore,
        counters: Optional[CounterSource] = None,
        policies: Optional[PolicySource] = None,
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        event_bus: Any = None,
    ) -> None:
        super().__init__(logger, event_bus)
        self.repository = repository
        self.catalog = catalog
        self.items = items
        self.counters = counters
        self.policies = policies or StaticPolicySource()
        self.selector = WeightedSelector(rng)
        self.applicator = RewardApplicator(items)
        self.clock = clock
        self._pending_events: Dict[str, List[DomainEvent]] = {}

    # ------------------------------------------------------------------ #
    # Records
    # ------------------------------------------------------------------ #

    def get_record(self, actor_id: str) -> ProgressionRecord:
        """The actor's record as currently saved (a fresh one if none is)."""
        record = self.repository.load(actor_id)
        self.log.debug(
            "Progression record loaded",
            extra={
                "actor_id": actor_id,
                "counter": record.counter,
                "milestones_granted": record.milestones_granted,
            },
        )
        return record

    def drain_events(self, actor_id: str) -> List[DomainEvent]:
        return self._pending_events.pop(actor_id, [])

    def _park_events(self, record: ProgressionRecord) -> None:
        events = record.clear_domain_events()
        if events:
            self._pending_events.setdefault(record.actor_id, []).extend(events)

    def current_policy(self) -> RewardPolicy:
        return self.policies.current()

    # ------------------------------------------------------------------ #
    # Counter reconciliation
    # ------------------------------------------------------------------ #

    def reconcile_counter(self, actor_id: str, reported: Any) -> int:
        """
        Merge a client-reported counter into the record.

        The accepted value is ``max(stored, reported, observed)``; a report
        below the stored value is rejected and the stored value echoed.

        Raises:
            InvalidCounterReportError: If `reported` is not a number
        """
        with LogContext(actor_id=actor_id, operation="reconcile_counter"):
            counter = _coerce_counter(reported)
            record = self.get_record(actor_id)
            try:
                return self._reconcile(record, counter)
            finally:
                self._park_events(record)

    def _observed_counter(self, actor_id: str) -> int:
        if self.counters is None:
            return 0
        try:
            return max(0, int(self.counters.read_counter(actor_id)))
        except HostError as exc:
            self.log.debug(
                "Observed counter unavailable",
                extra={"actor_id": actor_id, "error": str(exc)},
            )
            return 0

    def _reconcile(self, record: ProgressionRecord, reported: int) -> int:
        stored = record.counter
        if reported < stored:
            self.log.warning(
                "Rejected counter regression",
                extra={"actor_id": record.actor_id, "reported": reported, "stored": stored},
            )
        accepted = max(stored, reported, self._observed_counter(record.actor_id))
        if record.advance_counter(accepted):
            self.repository.save(record)
            self.log.info(
                "Counter synced",
                extra={"actor_id": record.actor_id, "previous_counter": stored, "counter": accepted},
            )
        return record.counter

    # ------------------------------------------------------------------ #
    # Rewards
    # ------------------------------------------------------------------ #

    def request_reward(self, actor_id: str, reported: Any, *, allow_batch: bool = True) -> BatchResult:
        """
        Reconcile the counter and grant the reward(s) now due.

        With ``grant_missed_opportunities`` on and ``allow_batch`` true, every
        owed milestone is granted in one batch; otherwise one reward per call.

        Returns:
            BatchResult. Failures are reported through ``outcome``.
        """
        with LogContext(actor_id=actor_id, operation="request_reward"):
            policy = self.policies.current()
            record = self.get_record(actor_id)
            try:
                return self._run_request(record, policy, reported, allow_batch)
            finally:
                self._park_events(record)

    def _run_request(
        self, record: ProgressionRecord, policy: RewardPolicy, reported: Any, allow_batch: bool
    ) -> BatchResult:
        actor_id = record.actor_id
        events: List[RewardEvent] = []
        try:
            if not policy.any_enabled:
                raise RewardsDisabledError()

            counter = self._reconcile(record, _coerce_counter(reported))
            required = milestone_threshold(record.milestones_granted + 1, policy)
            if counter < required:
                raise MilestoneNotReachedError(counter, required)

            missed = max(0, milestones_reached(counter, policy) - record.milestones_granted)
            batch_size = 1
            if policy.grant_missed_opportunities and allow_batch and missed > 1:
                batch_size = missed

            for _ in range(batch_size):
                try:
                    event = self._grant_one(actor_id, policy)
                except (CatalogExhaustedError, ApplyFailureError):
                    if not events:
                        raise
                    break
                record.record_reward(event)
                self.repository.save(record)
                events.append(event)
                self.log.info(
                    "Reward committed",
                    extra={
                        "actor_id": actor_id,
                        "item_id": event.item_id,
                        "direction": event.direction.value,
                        "rarity_tier": event.rarity_tier,
                        "milestones_granted": record.milestones_granted,
                    },
                )
        except BodyCountDomainException as exc:
            return self._failure(record, policy, exc)

        exhausted = not self.catalog.has_available_rewards(actor_id, self.items, policy)
        result = BatchResult(
            outcome=RewardOutcome.GRANTED,
            total_granted=len(events),
            remaining_milestones=self._remaining(record, policy),
            events=tuple(events),
            counter=record.counter,
            milestones_granted=record.milestones_granted,
            exhausted=exhausted,
        )
        self.log_operation(
            "request_reward",
            actor_id=actor_id,
            total_granted=result.total_granted,
            remaining_milestones=result.remaining_milestones,
            exhausted=exhausted,
        )
        return result

    def claim_reward(self, actor_id: str) -> Optional[RewardEvent]:
        """
        Single-actor shortcut: claim exactly one reward using the host counter.

        Returns the committed event, or None when nothing was granted.
        """
        result = self.request_reward(actor_id, self._observed_counter(actor_id), allow_batch=False)
        return result.events[0] if result.events else None

    def _pool_order(self, policy: RewardPolicy) -> Tuple[RewardDirection, RewardDirection]:
        if policy.priority is RewardPriority.NEGATIVE_FIRST:
            positive_first = False
        elif policy.priority is RewardPriority.RANDOM_PER_REWARD:
            positive_first = self.selector.rng.randrange(2) == 0
        else:
            positive_first = True
        if positive_first:
            return (RewardDirection.GRANT, RewardDirection.REVOKE)
        return (RewardDirection.REVOKE, RewardDirection.GRANT)

    def _grant_one(self, actor_id: str, policy: RewardPolicy) -> RewardEvent:
        """
        Select and apply one reward from freshly built pools.

        Raises:
            CatalogExhaustedError: Both pools are empty
            ApplyFailureError: Every attempted candidate failed to apply
        """
        pools = {
            RewardDirection.GRANT: self.catalog.eligible_pool(actor_id, self.items, policy, RewardDirection.GRANT),
            RewardDirection.REVOKE: self.catalog.eligible_pool(actor_id, self.items, policy, RewardDirection.REVOKE),
        }
        if not any(pools.values()):
            raise CatalogExhaustedError(actor_id)

        attempted: List[str] = []
        for direction in self._pool_order(policy):
            entry = self.selector.select(pools[direction])
            if entry is None:
                continue
            attempted.append(entry.item_id)
            if self.applicator.apply(actor_id, entry, direction):
                return RewardEvent(entry.item_id, direction, entry.rarity, float(self.clock()))
            self.log.debug(
                "Reward candidate failed; falling through",
                extra={"actor_id": actor_id, "item_id": entry.item_id, "direction": direction.value},
            )
        raise ApplyFailureError(actor_id, attempted)

    @staticmethod
    def _remaining(record: ProgressionRecord, policy: RewardPolicy) -> int:
        return max(0, milestones_reached(record.counter, policy) - record.milestones_granted)

    def _failure(
        self, record: ProgressionRecord, policy: RewardPolicy, exc: BodyCountDomainException
    ) -> BatchResult:
        outcome = RewardOutcome(exc.reason_code)
        if outcome is RewardOutcome.APPLY_FAILED:
            self.log_error("request_reward", exc, actor_id=record.actor_id)
        else:
            self.log.debug(
                "Reward request refused",
                extra={"actor_id": record.actor_id, "outcome": outcome.value},
            )
        return BatchResult(
            outcome=outcome,
            remaining_milestones=self._remaining(record, policy),
            counter=record.counter,
            milestones_granted=record.milestones_granted,
            exhausted=outcome is RewardOutcome.NO_REWARD_AVAILABLE,
            reason=exc.message,
        )
