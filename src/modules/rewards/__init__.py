"""
Rewards Module
==============

Kill-count milestone reward engine: milestone math, reward catalog and
selection, the authoritative progression service and the client scheduler.

Exports:
- ProgressionService: Authoritative counter reconciliation and reward grants
- AuthorityServer / LocalAuthority: Networked and in-process command dispatch
- ClientScheduler: Tick-driven client reconciliation and notifications
- RewardCatalog: Static item lists and eligible pools
- RewardPolicy: Policy snapshot
- build_snapshot: Presentation snapshot
"""

from .authority import AuthorityServer, LocalAuthority
from .catalog import CatalogEntry, RewardCatalog
from .policy import (
    ConfigPolicySource,
    RewardPolicy,
    RewardPriority,
    ScalingMode,
    SchedulerSettings,
    StaticPolicySource,
)
from .scheduler import ClientScheduler, SchedulerMode
from .service import BatchResult, ProgressionService, RewardOutcome
from .snapshot import ProgressSnapshot, build_snapshot

__all__ = [
    "AuthorityServer",
    "LocalAuthority",
    "CatalogEntry",
    "RewardCatalog",
    "ConfigPolicySource",
    "RewardPolicy",
    "RewardPriority",
    "ScalingMode",
    "SchedulerSettings",
    "StaticPolicySource",
    "ClientScheduler",
    "SchedulerMode",
    "BatchResult",
    "ProgressionService",
    "RewardOutcome",
    "ProgressSnapshot",
    "build_snapshot",
]
