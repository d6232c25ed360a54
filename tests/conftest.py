"""
Pytest Configuration and Fixtures for BodyCount Tests
=====================================================

Purpose
-------
Centralized test fixtures for the reward engine test suite: a seeded random
source, an in-memory host, the resolved catalog, policy sources, a wired
progression service and an in-memory SQLite database.

Architecture Notes
------------------
- Unit tests use the in-memory host (fast, isolated, failure injection)
- Integration tests use SQLite in memory through DatabaseService
- ConfigManager state is reset around every test
"""

from __future__ import annotations

import random
from typing import Generator, List

import pytest

from src.core.config.manager import ConfigManager
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.modules.rewards.authority import LocalAuthority
from src.modules.rewards.catalog import RewardCatalog
from src.modules.rewards.host import InMemoryHost
from src.modules.rewards.policy import RewardPolicy, SchedulerSettings, StaticPolicySource
from src.modules.rewards.repository import ModDataProgressionRepository
from src.modules.rewards.service import ProgressionService

logger = get_logger(__name__)

ACTOR = "player-1"

# ============================================================================
# CONFIGURATION
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config_manager() -> Generator[None, None, None]:
    ConfigManager.reset()
    yield
    ConfigManager.reset()


# ============================================================================
# HOST & CATALOG FIXTURES
# ============================================================================


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def host() -> InMemoryHost:
    """Host with one living actor at counter 0 holding nothing."""
    h = InMemoryHost()
    h.spawn(ACTOR)
    return h


@pytest.fixture
def catalog(host: InMemoryHost) -> RewardCatalog:
    return RewardCatalog.build(host)


@pytest.fixture
def policy() -> RewardPolicy:
    return RewardPolicy(kill_unit=1000)


@pytest.fixture
def policy_source(policy: RewardPolicy) -> StaticPolicySource:
    return StaticPolicySource(policy)


class Clock:
    """Deterministic clock: 100.0, 101.0, 102.0, ..."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        value = self.now
        self.now += 1.0
        return value


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def repository(host: InMemoryHost) -> ModDataProgressionRepository:
    return ModDataProgressionRepository(host.actor_data)


@pytest.fixture
def service(
    host: InMemoryHost,
    catalog: RewardCatalog,
    policy_source: StaticPolicySource,
    repository: ModDataProgressionRepository,
    rng: random.Random,
) -> ProgressionService:
    return ProgressionService(
        repository,
        catalog,
        host,
        host,
        policy_source,
        rng=rng,
        clock=Clock(),
    )


@pytest.fixture
def local_authority(service: ProgressionService) -> LocalAuthority:
    return LocalAuthority(service)


@pytest.fixture
def fast_settings() -> SchedulerSettings:
    """Short delays so scheduler tests stay readable."""
    return SchedulerSettings(
        pending_delay_ticks=3,
        notification_delay_ticks=5,
        final_notice_delay_ticks=4,
    )


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture
def sqlite_database() -> Generator[type[DatabaseService], None, None]:
    """
    In-memory SQLite through DatabaseService.

    Scope: function (fresh schema per test)
    """
    DatabaseService.initialize("sqlite://", echo=False)
    yield DatabaseService
    DatabaseService.shutdown()


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def give_everything(host: InMemoryHost, catalog: RewardCatalog, actor_id: str = ACTOR) -> None:
    """Leave the actor with no eligible grant and no eligible revoke."""
    host.spawn(actor_id, counter=host.read_counter(actor_id))
    for entry in catalog.grantable:
        host.add(actor_id, entry.item_id)


def event_names(events) -> List[str]:
    return [event.event_name for event in events]
