"""
Unit Tests for RewardApplicator
===============================
"""

import pytest

from src.domain.models.progression import RewardDirection
from src.modules.rewards.applicator import RewardApplicator
from tests.conftest import ACTOR


@pytest.fixture
def applicator(host):
    return RewardApplicator(host)


@pytest.mark.unit
class TestRewardApplicator:

    def test_grant_adds_item(self, applicator, catalog, host):
        # Act
        applied = applicator.apply(ACTOR, catalog.entry("SPEED_DEMON"), RewardDirection.GRANT)

        # Assert
        assert applied is True
        assert "SPEED_DEMON" in host.items_of(ACTOR)

    def test_revoke_removes_item(self, applicator, catalog, host):
        host.add(ACTOR, "SMOKER")

        applied = applicator.apply(ACTOR, catalog.entry("SMOKER"), RewardDirection.REVOKE)

        assert applied is True
        assert "SMOKER" not in host.items_of(ACTOR)

    def test_grant_of_held_item_fails_precondition(self, applicator, catalog, host):
        host.add(ACTOR, "SPEED_DEMON")

        assert applicator.apply(ACTOR, catalog.entry("SPEED_DEMON"), RewardDirection.GRANT) is False

    def test_revoke_of_missing_item_fails_precondition(self, applicator, catalog):
        assert applicator.apply(ACTOR, catalog.entry("SMOKER"), RewardDirection.REVOKE) is False

    def test_refused_mutation_reports_false(self, applicator, catalog, host):
        host.refuse("SPEED_DEMON")

        assert applicator.apply(ACTOR, catalog.entry("SPEED_DEMON"), RewardDirection.GRANT) is False
        assert "SPEED_DEMON" not in host.items_of(ACTOR)

    def test_host_error_reports_false(self, applicator, catalog, host):
        host.inject_failure("add")

        assert applicator.apply(ACTOR, catalog.entry("SPEED_DEMON"), RewardDirection.GRANT) is False
        assert host.items_of(ACTOR) == set()

    def test_unverified_mutation_reports_false(self, mocker, catalog):
        """The host claims success but the item never shows up."""
        # Arrange
        items = mocker.Mock()
        items.holds.return_value = False
        items.add.return_value = True
        applicator = RewardApplicator(items)

        # Act
        applied = applicator.apply(ACTOR, catalog.entry("SPEED_DEMON"), RewardDirection.GRANT)

        # Assert
        assert applied is False
        assert items.holds.call_count == 2
