"""
Read-only progress snapshot for presentation layers.

The renderer never calls into the engine; it paints whatever
`build_snapshot()` returns. Everything here is derived, nothing is mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from src.core.exceptions import HostError
from src.domain.models.progression import ProgressionRecord, RewardDirection, RewardEvent
from src.modules.rewards import constants
from src.modules.rewards.catalog import CatalogEntry, RewardCatalog
from src.modules.rewards.formulas import milestone_threshold
from src.modules.rewards.host import ItemStore
from src.modules.rewards.policy import RewardPolicy


class CatalogStatus(str, Enum):
    AVAILABLE = "available"
    DISABLED = "disabled"
    ALREADY_EARNED = "already_earned"
    ALREADY_REMOVED = "already_removed"
    OWNED = "owned"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class RoadmapEntry:
    number: int
    threshold: int
    reached: bool
    is_current: bool


@dataclass(frozen=True)
class CatalogStatusLine:
    item_id: str
    display_name: str
    direction: RewardDirection
    rarity: str
    color: Tuple[float, float, float]
    status: CatalogStatus
    chance: Optional[float] = None
    blocker: Optional[str] = None


@dataclass(frozen=True)
class ProgressSnapshot:
    actor_id: str
    counter: int
    milestones_granted: int
    next_threshold: int
    previous_threshold: int
    remaining: int
    progress_fraction: float
    progress_current: int
    progress_span: int
    scaling_label: str
    priority_label: str
    roadmap: Tuple[RoadmapEntry, ...]
    recent_history: Tuple[RewardEvent, ...]
    positive_status: Tuple[CatalogStatusLine, ...]
    negative_status: Tuple[CatalogStatusLine, ...]
    positive_enabled: bool
    negative_enabled: bool
    all_complete: bool

    @property
    def catalog_status(self) -> Tuple[CatalogStatusLine, ...]:
        return self.positive_status + self.negative_status


def _roadmap(granted: int, policy: RewardPolicy, all_complete: bool) -> Tuple[RoadmapEntry, ...]:
    if all_complete:
        shown = constants.ROADMAP_COMPLETED_SHOWN + constants.ROADMAP_UPCOMING_SHOWN
        numbers = range(max(1, granted - shown + 1), granted + 1)
    else:
        first = max(1, granted - constants.ROADMAP_COMPLETED_SHOWN + 1)
        numbers = range(first, granted + constants.ROADMAP_UPCOMING_SHOWN + 1)
    return tuple(
        RoadmapEntry(n, milestone_threshold(n, policy), n <= granted, n == granted + 1)
        for n in numbers
    )


def _chances(pool: List[CatalogEntry]) -> Dict[str, float]:
    total = sum(entry.weight for entry in pool)
    if total <= 0:
        return {}
    return {entry.item_id: entry.weight * 100.0 / total for entry in pool}


def _status_line(
    entry: CatalogEntry,
    record: ProgressionRecord,
    policy: RewardPolicy,
    catalog: RewardCatalog,
    items: ItemStore,
    chances: Dict[str, float],
    translate: Optional[Callable[[str], Optional[str]]],
) -> CatalogStatusLine:
    direction = entry.direction
    grant = direction is RewardDirection.GRANT
    enabled = policy.positive_enabled if grant else policy.negative_enabled
    blocker = None

    if entry.item_id in chances:
        status = CatalogStatus.AVAILABLE
    elif not enabled or not policy.is_item_allowed(entry.item_id):
        status = CatalogStatus.DISABLED
    elif grant and record.has_granted(entry.item_id):
        status = CatalogStatus.ALREADY_EARNED
    elif not grant and record.has_revoked(entry.item_id):
        status = CatalogStatus.ALREADY_REMOVED
    else:
        status = CatalogStatus.UNAVAILABLE
        try:
            if grant and items.holds(record.actor_id, entry.item_id):
                status = CatalogStatus.OWNED
            elif grant:
                blocker = catalog.blocking_item(record.actor_id, items, entry.item_id)
                if blocker is not None:
                    status = CatalogStatus.CONFLICT
        except HostError:
            blocker = None

    return CatalogStatusLine(
        item_id=entry.item_id,
        display_name=catalog.display_name(entry.item_id, translate),
        direction=direction,
        rarity=entry.rarity,
        color=entry.color,
        status=status,
        chance=chances.get(entry.item_id),
        blocker=blocker,
    )


def _negative_relevant(entry: CatalogEntry, record: ProgressionRecord, items: ItemStore) -> bool:
    if record.has_revoked(entry.item_id):
        return True
    try:
        return items.holds(record.actor_id, entry.item_id)
    except HostError:
        return False


def build_snapshot(
    record: ProgressionRecord,
    policy: RewardPolicy,
    catalog: RewardCatalog,
    items: ItemStore,
    *,
    translate: Optional[Callable[[str], Optional[str]]] = None,
    history_limit: int = constants.HISTORY_DISPLAY_LIMIT,
) -> ProgressSnapshot:
    """
    Compute the presentation snapshot for one actor.

    Args:
        record: The actor's progression record (or a mirror of it)
        policy: Current policy snapshot
        catalog: Resolved reward catalog
        items: Host item store for holding checks
        translate: Optional localisation lookup for item names
        history_limit: Maximum history entries, newest first

    Returns:
        ProgressSnapshot
    """
    actor_id = record.actor_id
    granted = record.milestones_granted
    counter = record.counter

    next_threshold = milestone_threshold(granted + 1, policy)
    previous_threshold = milestone_threshold(granted, policy)
    span = next_threshold - previous_threshold
    current = counter - previous_threshold
    fraction = 0.0 if span <= 0 else min(1.0, max(0.0, current / span))

    positive_pool = catalog.eligible_pool(actor_id, items, policy, RewardDirection.GRANT)
    negative_pool = catalog.eligible_pool(actor_id, items, policy, RewardDirection.REVOKE)
    all_complete = not positive_pool and not negative_pool

    positive_chances = _chances(positive_pool)
    negative_chances = _chances(negative_pool)

    positive_status = tuple(
        _status_line(entry, record, policy, catalog, items, positive_chances, translate)
        for entry in catalog.grantable
    )
    negative_status = tuple(
        _status_line(entry, record, policy, catalog, items, negative_chances, translate)
        for entry in catalog.revocable
        if _negative_relevant(entry, record, items)
    )

    return ProgressSnapshot(
        actor_id=actor_id,
        counter=counter,
        milestones_granted=granted,
        next_threshold=next_threshold,
        previous_threshold=previous_threshold,
        remaining=max(0, next_threshold - counter),
        progress_fraction=fraction,
        progress_current=current,
        progress_span=span,
        scaling_label=policy.scaling_label,
        priority_label=policy.priority_label,
        roadmap=_roadmap(granted, policy, all_complete),
        recent_history=record.recent_history(history_limit),
        positive_status=positive_status,
        negative_status=negative_status,
        positive_enabled=policy.positive_enabled,
        negative_enabled=policy.negative_enabled,
        all_complete=all_complete,
    )
