"""
BodyCount reward catalog data and gameplay constants.

Purpose
-------
Static data for the milestone reward engine: the two item lists (grantable
and revocable), the mutual-exclusion graph, rarity presentation data and the
default pacing values of the client scheduler.

Design Notes
------------
- Item costs follow the host's character-creation convention: negative cost
  for a beneficial item the actor can EARN, positive cost for a detrimental
  item the actor can have REMOVED.
- Occupation-only items and items that grant skill points are deliberately
  absent from both lists.
- The exclusion graph must stay symmetric; `RewardCatalog.build()` checks it.
- Values are annotated with typing.Final to signal immutability.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final, Mapping, Tuple

# ============================================================================
# SELECTION WEIGHTS
# ============================================================================

MAX_COST: Final[int] = 8  # weight = max(1, MAX_COST - |cost| + 1)

# |cost| upper bounds for each rarity tier, checked in order.
RARITY_BREAKPOINTS: Final[Tuple[Tuple[int, str], ...]] = (
    (2, "common"),
    (4, "uncommon"),
    (6, "rare"),
)
RARITY_FALLBACK: Final[str] = "veryRare"

RARITY_COLORS: Final[Mapping[str, Tuple[float, float, float]]] = MappingProxyType(
    {
        "common": (0.8, 0.8, 0.8),
        "uncommon": (0.6, 1.0, 0.2),
        "rare": (1.0, 0.6, 0.2),
        "veryRare": (0.8, 0.3, 1.0),
    }
)

# ============================================================================
# ITEM LISTS
# ============================================================================

# (item_id, cost); cost < 0 -> can be earned
GRANTABLE_ITEMS: Final[Tuple[Tuple[str, int], ...]] = (
    # common
    ("SPEED_DEMON", -1),
    ("NIGHT_VISION", -2),  # in-game: "Cat's Eyes"
    ("DEXTROUS", -2),
    ("FAST_READER", -2),
    ("INVENTIVE", -2),
    ("LIGHT_EATER", -2),
    ("LOW_THIRST", -2),
    ("OUTDOORSMAN", -2),
    ("NEEDS_LESS_SLEEP", -2),  # in-game: "Wakeful"
    # uncommon
    ("IRON_GUT", -3),
    ("ADRENALINE_JUNKIE", -4),
    ("EAGLE_EYED", -4),
    ("GRACEFUL", -4),
    ("INCONSPICUOUS", -4),
    ("NUTRITIONIST", -4),
    ("ORGANIZED", -4),
    ("RESILIENT", -4),
    # rare
    ("FAST_HEALER", -6),
    ("FAST_LEARNER", -6),
    ("KEEN_HEARING", -6),
    # very rare
    ("THICK_SKINNED", -8),
)

# (item_id, cost); cost > 0 -> can be removed
REVOCABLE_ITEMS: Final[Tuple[Tuple[str, int], ...]] = (
    # common
    ("HIGH_THIRST", 1),
    ("SUNDAY_DRIVER", 1),
    ("ALL_THUMBS", 2),
    ("CLUMSY", 2),
    ("COWARDLY", 2),
    ("SLOW_READER", 2),
    # uncommon
    ("SLOW_HEALER", 3),
    ("WEAK_STOMACH", 3),
    ("SMOKER", 4),
    ("AGORAPHOBIC", 4),
    ("CLAUSTROPHOBIC", 4),
    ("CONSPICUOUS", 4),
    ("HEARTY_APPETITE", 4),
    ("PACIFIST", 4),
    ("PRONE_TO_ILLNESS", 4),
    ("NEEDS_MORE_SLEEP", 4),  # in-game: "Sleepyhead"
    # rare
    ("ASTHMATIC", 5),
    ("HEMOPHOBIC", 5),
    ("DISORGANIZED", 6),
    ("SLOW_LEARNER", 6),
    # very rare
    ("ILLITERATE", 8),
    ("THIN_SKINNED", 8),
)

MUTUALLY_EXCLUSIVE: Final[Mapping[str, Tuple[str, ...]]] = MappingProxyType(
    {
        "ADRENALINE_JUNKIE": ("AGORAPHOBIC", "CLAUSTROPHOBIC", "COWARDLY"),
        "AGORAPHOBIC": ("ADRENALINE_JUNKIE", "CLAUSTROPHOBIC"),
        "ALL_THUMBS": ("DEXTROUS",),
        "CLAUSTROPHOBIC": ("ADRENALINE_JUNKIE", "AGORAPHOBIC"),
        "CLUMSY": ("GRACEFUL",),
        "CONSPICUOUS": ("INCONSPICUOUS",),
        "COWARDLY": ("ADRENALINE_JUNKIE",),
        "DEXTROUS": ("ALL_THUMBS",),
        "DISORGANIZED": ("ORGANIZED",),
        "FAST_HEALER": ("SLOW_HEALER",),
        "FAST_LEARNER": ("SLOW_LEARNER",),
        "FAST_READER": ("ILLITERATE", "SLOW_READER"),
        "GRACEFUL": ("CLUMSY",),
        "HEARTY_APPETITE": ("LIGHT_EATER",),
        "HIGH_THIRST": ("LOW_THIRST",),
        "ILLITERATE": ("FAST_READER", "SLOW_READER"),
        "INCONSPICUOUS": ("CONSPICUOUS",),
        "IRON_GUT": ("WEAK_STOMACH",),
        "LIGHT_EATER": ("HEARTY_APPETITE",),
        "LOW_THIRST": ("HIGH_THIRST",),
        "ORGANIZED": ("DISORGANIZED",),
        "PRONE_TO_ILLNESS": ("RESILIENT",),
        "RESILIENT": ("PRONE_TO_ILLNESS",),
        "NEEDS_MORE_SLEEP": ("NEEDS_LESS_SLEEP",),
        "NEEDS_LESS_SLEEP": ("NEEDS_MORE_SLEEP",),
        "SLOW_HEALER": ("FAST_HEALER",),
        "SLOW_LEARNER": ("FAST_LEARNER",),
        "SLOW_READER": ("FAST_READER", "ILLITERATE"),
        "SPEED_DEMON": ("SUNDAY_DRIVER",),
        "SUNDAY_DRIVER": ("SPEED_DEMON",),
        "THICK_SKINNED": ("THIN_SKINNED",),
        "THIN_SKINNED": ("THICK_SKINNED",),
        "WEAK_STOMACH": ("IRON_GUT",),
    }
)

# ============================================================================
# DISPLAY NAMES
# ============================================================================

TRANSLATION_PREFIX: Final[str] = "UI_trait_"

# Items whose localisation key does not follow the CamelCase-of-id rule.
TRANSLATION_KEY_OVERRIDES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "NEEDS_LESS_SLEEP": "UI_trait_LessSleep",
        "NEEDS_MORE_SLEEP": "UI_trait_MoreSleep",
        "DEXTROUS": "UI_trait_Dexterous",
    }
)

# ============================================================================
# CLIENT SCHEDULER DEFAULTS (ticks)
# ============================================================================

PENDING_DELAY_TICKS: Final[int] = 90
NOTIFICATION_DELAY_TICKS: Final[int] = 200
FINAL_NOTICE_DELAY_TICKS: Final[int] = 90

PROXIMITY_FLOOR: Final[int] = 10
PROXIMITY_CEILING: Final[int] = 100
PROXIMITY_FRACTION: Final[float] = 0.1

# ============================================================================
# POLICY DEFAULTS
# ============================================================================

DEFAULT_KILL_UNIT: Final[int] = 1000
DEFAULT_PROGRESSIVE_FACTOR: Final[float] = 1.0

# Largest counter accepted from a client: the biggest integer a Lua number
# (IEEE double) represents exactly.
MAX_COUNTER: Final[int] = 2**53 - 1

# ============================================================================
# PRESENTATION
# ============================================================================

HISTORY_DISPLAY_LIMIT: Final[int] = 20
ROADMAP_COMPLETED_SHOWN: Final[int] = 2
ROADMAP_UPCOMING_SHOWN: Final[int] = 5

# ============================================================================
# PERSISTENCE
# ============================================================================

MOD_DATA_KEY: Final[str] = "progression"
LEGACY_MOD_DATA_KEY: Final[str] = "BCR"

# ============================================================================
# NOTIFICATION TEXT
# ============================================================================

GAINED_TEMPLATE: Final[str] = "Gained: {name}"
LOST_TEMPLATE: Final[str] = "Lost: {name}"
BATCH_TEMPLATE: Final[str] = "{count} rewards earned!"
FINAL_NOTICE_TEXT: Final[str] = "All rewards granted!"
