"""
BodyCount milestone and rarity formulas.

Pure calculation functions: no config access, no I/O, every parameter passed
in explicitly.

Milestone math
--------------
- Linear:      threshold(n) = n * unit
- Progressive: threshold(n) = floor(unit * (n + F * n * (n - 1) / 2))
  (F = 1.0 gives triangular growth, F = 0.5 a gentler curve), evaluated in
  exact rational arithmetic so large n never loses precision

`milestones_reached` is the exact inverse: for every counter value c,
``threshold(reached(c)) <= c < threshold(reached(c) + 1)``.

Usage
-----
    from src.modules.rewards.formulas import milestone_threshold, milestones_reached

    milestone_threshold(3, policy)     # 600 for unit=100, progressive, F=1.0
    milestones_reached(2500, policy)   # 2 for unit=1000, linear
"""

from __future__ import annotations

import math
from fractions import Fraction
from typing import TYPE_CHECKING

from src.modules.rewards import constants
from src.modules.rewards.policy import ScalingMode

if TYPE_CHECKING:
    from src.modules.rewards.policy import RewardPolicy


def milestone_threshold(n: int, policy: RewardPolicy) -> int:
    """
    Counter value at which milestone `n` is reached.

    Args:
        n: Milestone number (1-based)
        policy: Scaling policy

    Returns:
        Counter threshold; 0 for ``n <= 0``

    Example:
        >>> milestone_threshold(3, RewardPolicy(kill_unit=100, scaling=ScalingMode.PROGRESSIVE))
        600
    """
    if n <= 0:
        return 0
    unit = policy.kill_unit
    if policy.scaling is ScalingMode.PROGRESSIVE:
        factor = Fraction(policy.progressive_factor)
        return math.floor(unit * (n + factor * n * (n - 1) / 2))
    return n * unit


def milestones_reached(counter: int, policy: RewardPolicy) -> int:
    """
    Number of milestones fully reached at `counter`.

    Binary search over ``[0, counter // unit]``; thresholds grow at least
    linearly, so the answer always lies in that range and the search takes
    O(log counter) exact threshold evaluations.

    Example:
        >>> milestones_reached(2500, RewardPolicy(kill_unit=1000))
        2
    """
    unit = policy.kill_unit
    if counter <= 0:
        return 0

    factor = policy.progressive_factor
    if policy.scaling is not ScalingMode.PROGRESSIVE or factor <= 0:
        return counter // unit

    low, high = 0, counter // unit
    while low < high:
        mid = (low + high + 1) // 2
        if milestone_threshold(mid, policy) <= counter:
            low = mid
        else:
            high = mid - 1
    return low


def proximity_band(
    unit: int,
    floor: int = constants.PROXIMITY_FLOOR,
    ceiling: int = constants.PROXIMITY_CEILING,
    fraction: float = constants.PROXIMITY_FRACTION,
) -> int:
    """
    Distance to the next milestone within which the client proactively syncs.

    ``max(floor, min(floor(unit * fraction), ceiling))``

    Example:
        >>> proximity_band(1000)
        100
        >>> proximity_band(50)
        10
    """
    return max(floor, min(math.floor(unit * fraction), ceiling))


def rarity_tier(cost: int) -> str:
    """
    Rarity tier for a catalog cost.

    Example:
        >>> rarity_tier(-6)
        'rare'
    """
    magnitude = abs(cost)
    for bound, tier in constants.RARITY_BREAKPOINTS:
        if magnitude <= bound:
            return tier
    return constants.RARITY_FALLBACK


def rarity_color(cost: int) -> tuple[float, float, float]:
    return constants.RARITY_COLORS.get(rarity_tier(cost), constants.RARITY_COLORS["common"])


def calculate_weight(cost: int, max_cost: int = constants.MAX_COST) -> int:
    """
    Selection weight: cheaper items are proportionally more likely.

    Example:
        >>> calculate_weight(-1)
        8
        >>> calculate_weight(8)
        1
    """
    return max(1, max_cost - abs(cost) + 1)
