"""
Unit Tests for the Progress Snapshot
====================================
"""

import pytest

from src.domain.models.progression import ProgressionRecord, RewardDirection, RewardEvent
from src.modules.rewards.policy import RewardPolicy, ScalingMode
from src.modules.rewards.snapshot import CatalogStatus, build_snapshot
from tests.conftest import ACTOR, give_everything


def _line(lines, item_id):
    return next(line for line in lines if line.item_id == item_id)


# ============================================================================
# PROGRESS TESTS
# ============================================================================


@pytest.mark.unit
class TestProgress:

    def test_fresh_actor(self, catalog, host, policy):
        # Act
        snapshot = build_snapshot(ProgressionRecord.new(ACTOR), policy, catalog, host)

        # Assert
        assert snapshot.next_threshold == 1000
        assert snapshot.previous_threshold == 0
        assert snapshot.remaining == 1000
        assert snapshot.progress_fraction == 0.0
        assert [entry.number for entry in snapshot.roadmap] == [1, 2, 3, 4, 5]
        assert snapshot.roadmap[0].is_current
        assert not snapshot.all_complete

    def test_progress_between_milestones(self, catalog, host, policy):
        record = ProgressionRecord(ACTOR, counter=2500, milestones_granted=2)

        snapshot = build_snapshot(record, policy, catalog, host)

        assert (snapshot.previous_threshold, snapshot.next_threshold) == (2000, 3000)
        assert snapshot.progress_current == 500
        assert snapshot.progress_span == 1000
        assert snapshot.progress_fraction == 0.5
        assert snapshot.remaining == 500
        assert [e.number for e in snapshot.roadmap] == [1, 2, 3, 4, 5, 6, 7]
        assert [e.reached for e in snapshot.roadmap[:3]] == [True, True, False]
        assert snapshot.roadmap[2].is_current
        assert snapshot.roadmap[2].threshold == 3000

    def test_roadmap_window_slides(self, catalog, host, policy):
        record = ProgressionRecord(ACTOR, counter=5200, milestones_granted=5)

        snapshot = build_snapshot(record, policy, catalog, host)

        assert [e.number for e in snapshot.roadmap] == [4, 5, 6, 7, 8, 9, 10]

    def test_owed_milestones_clamp_fraction(self, catalog, host, policy):
        record = ProgressionRecord(ACTOR, counter=5000, milestones_granted=1)

        snapshot = build_snapshot(record, policy, catalog, host)

        assert snapshot.progress_fraction == 1.0
        assert snapshot.remaining == 0

    def test_progressive_labels_and_thresholds(self, catalog, host):
        policy = RewardPolicy(kill_unit=100, scaling=ScalingMode.PROGRESSIVE, progressive_factor=1.5)
        record = ProgressionRecord(ACTOR, counter=150, milestones_granted=1)

        snapshot = build_snapshot(record, policy, catalog, host)

        assert snapshot.scaling_label == "Progressive (x1.5)"
        assert snapshot.priority_label == "Gain Positive First"
        assert snapshot.next_threshold == 350
        assert snapshot.progress_fraction == pytest.approx(50 / 250)

    def test_all_complete(self, catalog, host, policy):
        give_everything(host, catalog)
        record = ProgressionRecord(ACTOR, counter=3000, milestones_granted=3)

        snapshot = build_snapshot(record, policy, catalog, host)

        assert snapshot.all_complete
        assert [e.number for e in snapshot.roadmap] == [1, 2, 3]
        assert all(e.reached for e in snapshot.roadmap)

    def test_history_newest_first_and_limited(self, catalog, host, policy):
        events = [RewardEvent("SPEED_DEMON", RewardDirection.GRANT, "common", float(i)) for i in range(25)]
        record = ProgressionRecord(ACTOR, counter=25000, milestones_granted=25, history=events)

        snapshot = build_snapshot(record, policy, catalog, host)

        assert len(snapshot.recent_history) == 20
        assert snapshot.recent_history[0].timestamp == 24.0


# ============================================================================
# CATALOG STATUS TESTS
# ============================================================================


@pytest.mark.unit
class TestCatalogStatus:

    def test_available_chances_sum_to_hundred(self, catalog, host, policy):
        snapshot = build_snapshot(ProgressionRecord.new(ACTOR), policy, catalog, host)

        chances = [line.chance for line in snapshot.positive_status]
        assert all(line.status is CatalogStatus.AVAILABLE for line in snapshot.positive_status)
        assert sum(chances) == pytest.approx(100.0)
        assert snapshot.negative_status == ()

    def test_conflict_and_removable(self, catalog, host, policy):
        # Arrange
        host.add(ACTOR, "SUNDAY_DRIVER")

        # Act
        snapshot = build_snapshot(ProgressionRecord.new(ACTOR), policy, catalog, host)

        # Assert
        speed = _line(snapshot.positive_status, "SPEED_DEMON")
        assert speed.status is CatalogStatus.CONFLICT
        assert speed.blocker == "SUNDAY_DRIVER"
        assert [line.item_id for line in snapshot.negative_status] == ["SUNDAY_DRIVER"]
        assert snapshot.negative_status[0].chance == pytest.approx(100.0)

    def test_earned_owned_and_disabled(self, catalog, host):
        # Arrange
        policy = RewardPolicy(allowed_items={"DEXTROUS": False})
        host.add(ACTOR, "SPEED_DEMON")
        host.add(ACTOR, "FAST_LEARNER")
        record = ProgressionRecord(
            ACTOR,
            counter=1000,
            milestones_granted=1,
            history=[RewardEvent("SPEED_DEMON", RewardDirection.GRANT, "common", 1.0)],
        )

        # Act
        snapshot = build_snapshot(record, policy, catalog, host)

        # Assert
        assert _line(snapshot.positive_status, "SPEED_DEMON").status is CatalogStatus.ALREADY_EARNED
        assert _line(snapshot.positive_status, "FAST_LEARNER").status is CatalogStatus.OWNED
        assert _line(snapshot.positive_status, "DEXTROUS").status is CatalogStatus.DISABLED

    def test_already_removed(self, catalog, host, policy):
        record = ProgressionRecord(
            ACTOR,
            counter=1000,
            milestones_granted=1,
            history=[RewardEvent("SMOKER", RewardDirection.REVOKE, "uncommon", 1.0)],
        )

        snapshot = build_snapshot(record, policy, catalog, host)

        smoker = _line(snapshot.negative_status, "SMOKER")
        assert smoker.status is CatalogStatus.ALREADY_REMOVED
        assert smoker.chance is None

    def test_disabled_direction(self, catalog, host):
        policy = RewardPolicy(positive_enabled=False)

        snapshot = build_snapshot(ProgressionRecord.new(ACTOR), policy, catalog, host)

        assert not snapshot.positive_enabled
        assert {line.status for line in snapshot.positive_status} == {CatalogStatus.DISABLED}

    def test_translated_names(self, catalog, host, policy):
        snapshot = build_snapshot(
            ProgressionRecord.new(ACTOR),
            policy,
            catalog,
            host,
            translate={"UI_trait_SpeedDemon": "Speedy"}.get,
        )

        assert _line(snapshot.catalog_status, "SPEED_DEMON").display_name == "Speedy"
        assert _line(snapshot.catalog_status, "OUTDOORSMAN").display_name == "Outdoorsman"
