"""
Host collaborator contracts for the reward engine.

The engine never talks to the game directly. It reads counters and item
holdings through the protocols below, and every accessor reports trouble by
raising `HostError`, which callers treat as a soft failure.

`InMemoryHost` implements all three protocols over plain dictionaries. It is
the host used by single-process embeddings and by the test-suite, and it
supports failure injection so soft-failure paths can be exercised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Protocol, Set

from src.core.exceptions import HostError
from src.core.logging.logger import get_logger
from src.modules.rewards import constants

logger = get_logger(__name__)


@dataclass(frozen=True)
class ItemHandle:
    """Resolved reference to a host item definition."""

    item_id: str
    native: Any = None


class CounterSource(Protocol):
    def read_counter(self, actor_id: str) -> int: ...

    def is_alive(self, actor_id: str) -> bool: ...


class ItemStore(Protocol):
    def holds(self, actor_id: str, item_id: str) -> bool: ...

    def add(self, actor_id: str, item_id: str) -> bool: ...

    def remove(self, actor_id: str, item_id: str) -> bool: ...


class ItemResolver(Protocol):
    def resolve(self, item_id: str) -> Optional[ItemHandle]: ...


class IdentityResolver:
    """Resolves every id to a bare handle. For hosts without an item registry."""

    def resolve(self, item_id: str) -> Optional[ItemHandle]:
        return ItemHandle(item_id)


# ============================================================================
# In-memory host
# ============================================================================


@dataclass
class _ActorState:
    counter: int = 0
    items: Set[str] = field(default_factory=set)
    alive: bool = True
    data: Dict[str, Any] = field(default_factory=dict)


class InMemoryHost:
    """
    Dictionary-backed host implementing CounterSource, ItemStore and
    ItemResolver.

    Failure injection
    -----------------
    - `inject_failure(operation, times)`: the next `times` calls of
      ``read_counter`` / ``holds`` / ``add`` / ``remove`` raise `HostError`.
    - `refuse(item_id)`: ``add`` and ``remove`` for that item return False
      without changing anything.
    """

    def __init__(self, known_items: Optional[Iterable[str]] = None) -> None:
        if known_items is None:
            known_items = [item for item, _ in constants.GRANTABLE_ITEMS + constants.REVOCABLE_ITEMS]
        self._known = set(known_items)
        self._actors: Dict[str, _ActorState] = {}
        self._failures: Dict[str, int] = {}
        self._refused: Set[str] = set()

    # ------------------------------------------------------------------ #
    # Test / embedding controls
    # ------------------------------------------------------------------ #

    def spawn(self, actor_id: str, counter: int = 0, items: Iterable[str] = ()) -> None:
        """Create (or recreate) an actor. Recreation drops items and data."""
        self._actors[actor_id] = _ActorState(counter=counter, items=set(items))

    def set_counter(self, actor_id: str, counter: int) -> None:
        self._actor(actor_id).counter = counter

    def add_kills(self, actor_id: str, kills: int = 1) -> int:
        state = self._actor(actor_id)
        state.counter += kills
        return state.counter

    def kill(self, actor_id: str) -> None:
        self._actor(actor_id).alive = False

    def items_of(self, actor_id: str) -> Set[str]:
        return set(self._actor(actor_id).items)

    def actor_data(self, actor_id: str) -> Dict[str, Any]:
        """Per-actor key-value store persisted with the actor's save."""
        return self._actor(actor_id).data

    @property
    def known_items(self) -> Set[str]:
        return set(self._known)

    def inject_failure(self, operation: str, times: int = 1) -> None:
        self._failures[operation] = self._failures.get(operation, 0) + times

    def refuse(self, item_id: str) -> None:
        self._refused.add(item_id)

    # ------------------------------------------------------------------ #
    # CounterSource
    # ------------------------------------------------------------------ #

    def read_counter(self, actor_id: str) -> int:
        self._maybe_fail("read_counter", actor_id)
        return self._actor(actor_id).counter

    def is_alive(self, actor_id: str) -> bool:
        state = self._actors.get(actor_id)
        return state is not None and state.alive

    # ------------------------------------------------------------------ #
    # ItemStore
    # ------------------------------------------------------------------ #

    def holds(self, actor_id: str, item_id: str) -> bool:
        self._maybe_fail("holds", actor_id)
        return item_id in self._actor(actor_id).items

    def add(self, actor_id: str, item_id: str) -> bool:
        self._maybe_fail("add", actor_id)
        if item_id in self._refused or item_id not in self._known:
            return False
        self._actor(actor_id).items.add(item_id)
        return True

    def remove(self, actor_id: str, item_id: str) -> bool:
        self._maybe_fail("remove", actor_id)
        if item_id in self._refused:
            return False
        items = self._actor(actor_id).items
        if item_id not in items:
            return False
        items.discard(item_id)
        return True

    # ------------------------------------------------------------------ #
    # ItemResolver
    # ------------------------------------------------------------------ #

    def resolve(self, item_id: str) -> Optional[ItemHandle]:
        if item_id not in self._known:
            return None
        return ItemHandle(item_id, native=item_id)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _actor(self, actor_id: str) -> _ActorState:
        state = self._actors.get(actor_id)
        if state is None:
            raise HostError("lookup", actor_id, KeyError(actor_id))
        return state

    def _maybe_fail(self, operation: str, actor_id: str) -> None:
        remaining = self._failures.get(operation, 0)
        if remaining <= 0:
            return
        self._failures[operation] = remaining - 1
        logger.debug(
            "Injected host failure",
            extra={"operation": operation, "actor_id": actor_id},
        )
        raise HostError(operation, actor_id, RuntimeError("injected failure"))
