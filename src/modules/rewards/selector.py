"""
Weighted random selection over an eligible pool.
"""

from __future__ import annotations

import random
import secrets
from typing import Optional, Sequence

from src.modules.rewards.catalog import CatalogEntry


class WeightedSelector:
    """
    Draw one entry with probability proportional to its weight.

    Bands are laid out in pool order, so a seeded `random.Random` and a fixed
    pool give a reproducible draw. The pool is never modified.

    Args:
        rng: Random source. Defaults to `secrets.SystemRandom()`.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng if rng is not None else secrets.SystemRandom()

    def select(self, pool: Sequence[CatalogEntry]) -> Optional[CatalogEntry]:
        if not pool:
            return None

        total = sum(entry.weight for entry in pool)
        if total <= 0:
            return pool[self.rng.randrange(len(pool))]

        roll = self.rng.randrange(total)
        cumulative = 0
        for entry in pool:
            cumulative += entry.weight
            if roll < cumulative:
                return entry
        return pool[-1]
