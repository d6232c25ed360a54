"""
Reward applicator: materialize one selected reward on the actor.
"""

from __future__ import annotations

from src.core.exceptions import HostError
from src.core.logging.logger import get_logger
from src.domain.models.progression import RewardDirection
from src.modules.rewards.catalog import CatalogEntry
from src.modules.rewards.host import ItemStore

logger = get_logger(__name__)


class RewardApplicator:
    """
    Add or remove one item through the host item store.

    The precondition is checked again at apply time because the pool the
    entry came from may be stale within a batch. The mutation is then
    verified by reading the holding state back, since host mutations are not
    guaranteed to be atomic. Every failure is reported as ``False``.
    """

    def __init__(self, items: ItemStore) -> None:
        self.items = items

    def apply(self, actor_id: str, entry: CatalogEntry, direction: RewardDirection) -> bool:
        grant = direction is RewardDirection.GRANT
        try:
            if self.items.holds(actor_id, entry.item_id) == grant:
                logger.debug(
                    "Reward precondition no longer holds",
                    extra={"actor_id": actor_id, "item_id": entry.item_id, "direction": direction.value},
                )
                return False

            if grant:
                changed = self.items.add(actor_id, entry.item_id)
            else:
                changed = self.items.remove(actor_id, entry.item_id)
            if not changed:
                return False

            verified = self.items.holds(actor_id, entry.item_id) == grant
        except HostError as exc:
            logger.warning(
                "Host failure while applying reward",
                extra={
                    "actor_id": actor_id,
                    "item_id": entry.item_id,
                    "direction": direction.value,
                    "error": str(exc),
                },
            )
            return False

        if not verified:
            logger.warning(
                "Reward mutation did not take effect",
                extra={"actor_id": actor_id, "item_id": entry.item_id, "direction": direction.value},
            )
        return verified
