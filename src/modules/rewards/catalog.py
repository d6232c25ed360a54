"""
Reward catalog: the static item lists and the per-actor eligible pools.

Purpose
-------
Hold the grantable and revocable item definitions, validate the static data
once at build time, and answer "which items can this actor receive (or lose)
right now" for the progression service and the presentation snapshot.

Design Notes
------------
- Item ids are resolved to `ItemHandle`s exactly once, in `RewardCatalog.build()`.
  Items the host cannot resolve are dropped from the catalog and logged.
- Eligible pools are snapshots. The applicator re-checks the precondition of
  the one item it mutates, so a stale pool is harmless.
- A `HostError` while checking an item makes that item ineligible for this
  pool build; it never aborts the build.

Usage
-----
    catalog = RewardCatalog.build(host)
    pool = catalog.eligible_pool("player-1", host, policy, RewardDirection.GRANT)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from src.core.exceptions import HostError
from src.core.logging.logger import get_logger
from src.domain.models.progression import RewardDirection
from src.modules.rewards import constants
from src.modules.rewards.formulas import calculate_weight, rarity_color, rarity_tier
from src.modules.rewards.host import ItemHandle, ItemResolver, ItemStore
from src.modules.rewards.policy import RewardPolicy
from src.modules.shared.exceptions import CatalogIntegrityError

logger = get_logger(__name__)

Translator = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class CatalogEntry:
    """One static catalog item. Negative cost grants, positive cost revokes."""

    item_id: str
    cost: int
    handle: ItemHandle

    @property
    def weight(self) -> int:
        return calculate_weight(self.cost)

    @property
    def rarity(self) -> str:
        return rarity_tier(self.cost)

    @property
    def color(self) -> Tuple[float, float, float]:
        return rarity_color(self.cost)

    @property
    def direction(self) -> RewardDirection:
        return RewardDirection.GRANT if self.cost < 0 else RewardDirection.REVOKE


def format_display_name(item_id: str, translate: Optional[Translator] = None) -> str:
    """
    Human-readable item name.

    Tries the localisation override key, then ``UI_trait_<CamelCase>``,
    then falls back to title case (``SPEED_DEMON`` -> ``Speed Demon``).
    A translator that returns None or echoes the key counts as a miss.
    """
    parts = [part.capitalize() for part in item_id.split("_") if part]
    if translate is not None:
        keys = [constants.TRANSLATION_PREFIX + "".join(parts)]
        override = constants.TRANSLATION_KEY_OVERRIDES.get(item_id)
        if override:
            keys.insert(0, override)
        for key in keys:
            text = translate(key)
            if text and text != key:
                return text
    return " ".join(parts)


def _validate(
    grantable: Sequence[Tuple[str, int]],
    revocable: Sequence[Tuple[str, int]],
    exclusions: Mapping[str, Sequence[str]],
) -> None:
    """
    Raises:
        CatalogIntegrityError: On bad costs, duplicate ids, overlapping lists
            or an asymmetric exclusion graph
    """
    seen: Dict[str, str] = {}
    for list_name, items, expect_negative in (
        ("grantable", grantable, True),
        ("revocable", revocable, False),
    ):
        for item_id, cost in items:
            if item_id in seen:
                raise CatalogIntegrityError(
                    "duplicate item id",
                    item_id=item_id,
                    lists=[seen[item_id], list_name],
                )
            seen[item_id] = list_name
            if cost == 0 or (cost < 0) != expect_negative:
                raise CatalogIntegrityError(
                    "cost sign does not match list",
                    item_id=item_id,
                    cost=cost,
                    list=list_name,
                )

    for item_id, blocked in exclusions.items():
        for other in blocked:
            if item_id not in exclusions.get(other, ()):
                raise CatalogIntegrityError(
                    "asymmetric mutual exclusion",
                    item_id=item_id,
                    other=other,
                )


class RewardCatalog:
    """
    Validated, resolved view of the static item lists.

    Build it with `RewardCatalog.build()`; the constructor trusts its input.
    """

    def __init__(
        self,
        grantable: Iterable[CatalogEntry],
        revocable: Iterable[CatalogEntry],
        exclusions: Mapping[str, Sequence[str]],
    ) -> None:
        self._grantable: Tuple[CatalogEntry, ...] = tuple(grantable)
        self._revocable: Tuple[CatalogEntry, ...] = tuple(revocable)
        self._exclusions: Dict[str, Tuple[str, ...]] = {
            item_id: tuple(blocked) for item_id, blocked in exclusions.items()
        }
        self._by_id: Dict[str, CatalogEntry] = {
            entry.item_id: entry for entry in self._grantable + self._revocable
        }

    @classmethod
    def build(
        cls,
        resolver: ItemResolver,
        grantable: Sequence[Tuple[str, int]] = constants.GRANTABLE_ITEMS,
        revocable: Sequence[Tuple[str, int]] = constants.REVOCABLE_ITEMS,
        exclusions: Mapping[str, Sequence[str]] = constants.MUTUALLY_EXCLUSIVE,
    ) -> RewardCatalog:
        """
        Validate the static data and resolve every item once.

        Raises:
            CatalogIntegrityError: If the static data is inconsistent
        """
        _validate(grantable, revocable, exclusions)

        def resolve_all(items: Sequence[Tuple[str, int]]) -> List[CatalogEntry]:
            entries = []
            for item_id, cost in items:
                handle = resolver.resolve(item_id)
                if handle is None:
                    logger.warning(
                        "Catalog item not found on host; skipping",
                        extra={"item_id": item_id},
                    )
                    continue
                entries.append(CatalogEntry(item_id, cost, handle))
            return entries

        catalog = cls(resolve_all(grantable), resolve_all(revocable), exclusions)
        logger.info(
            "Reward catalog built",
            extra={
                "grantable": len(catalog.grantable),
                "revocable": len(catalog.revocable),
            },
        )
        return catalog

    # ------------------------------------------------------------------ #
    # Static lookups
    # ------------------------------------------------------------------ #

    @property
    def grantable(self) -> Tuple[CatalogEntry, ...]:
        return self._grantable

    @property
    def revocable(self) -> Tuple[CatalogEntry, ...]:
        return self._revocable

    def entries(self, direction: RewardDirection) -> Tuple[CatalogEntry, ...]:
        return self._grantable if direction is RewardDirection.GRANT else self._revocable

    def entry(self, item_id: str) -> Optional[CatalogEntry]:
        return self._by_id.get(item_id)

    def exclusions_of(self, item_id: str) -> Tuple[str, ...]:
        return self._exclusions.get(item_id, ())

    def display_name(self, item_id: str, translate: Optional[Translator] = None) -> str:
        return format_display_name(item_id, translate)

    # ------------------------------------------------------------------ #
    # Actor-dependent queries
    # ------------------------------------------------------------------ #

    def blocking_item(self, actor_id: str, items: ItemStore, item_id: str) -> Optional[str]:
        """
        First held item that excludes `item_id`, if any.

        Raises:
            HostError: If a holding check fails
        """
        for other in self._exclusions.get(item_id, ()):
            if items.holds(actor_id, other):
                return other
        return None

    def eligible_pool(
        self,
        actor_id: str,
        items: ItemStore,
        policy: RewardPolicy,
        direction: RewardDirection,
    ) -> List[CatalogEntry]:
        """
        Items that could be granted (or revoked) for the actor right now.

        A grant needs the item not held and not blocked by a held conflict.
        A revoke needs the item held. Disabled directions and disallowed items
        yield nothing. Always returns a list, possibly empty.
        """
        if direction is RewardDirection.GRANT and not policy.positive_enabled:
            return []
        if direction is RewardDirection.REVOKE and not policy.negative_enabled:
            return []

        pool = []
        for entry in self.entries(direction):
            if not policy.is_item_allowed(entry.item_id):
                continue
            try:
                if direction is RewardDirection.GRANT:
                    eligible = not items.holds(actor_id, entry.item_id) and (
                        self.blocking_item(actor_id, items, entry.item_id) is None
                    )
                else:
                    eligible = items.holds(actor_id, entry.item_id)
            except HostError as exc:
                logger.debug(
                    "Host check failed; item skipped for this pool",
                    extra={"actor_id": actor_id, "item_id": entry.item_id, "error": str(exc)},
                )
                continue
            if eligible:
                pool.append(entry)
        return pool

    def has_available_rewards(self, actor_id: str, items: ItemStore, policy: RewardPolicy) -> bool:
        return bool(
            self.eligible_pool(actor_id, items, policy, RewardDirection.GRANT)
            or self.eligible_pool(actor_id, items, policy, RewardDirection.REVOKE)
        )
