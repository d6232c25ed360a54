"""
Unit Tests for the Progression Domain Model
===========================================

Purpose
-------
Test the business rules of ProgressionRecord without any persistence.

Test Coverage
-------------
- Monotonic counter and granted count
- Append-only history and domain events
- Blob serialization, legacy migration and corruption handling
"""

import pytest

from src.core.exceptions import RecordCorruptedError
from src.domain.models.base import DomainValidationError
from src.domain.models.progression import (
    BLOB_SCHEMA_VERSION,
    ProgressionRecord,
    RewardDirection,
    RewardEvent,
)

ACTOR = "player-1"


def _event(item_id="IRON_GUT", direction=RewardDirection.GRANT, timestamp=12.5):
    return RewardEvent(item_id, direction, "uncommon", timestamp)


# ============================================================================
# COUNTER TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestCounter:
    """Test ProgressionRecord.advance_counter()."""

    def test_new_record_is_empty(self):
        record = ProgressionRecord.new(ACTOR)

        assert (record.counter, record.milestones_granted, record.history) == (0, 0, ())

    def test_advance_moves_forward(self):
        # Arrange
        record = ProgressionRecord.new(ACTOR)

        # Act
        changed = record.advance_counter(1200)

        # Assert
        assert changed is True
        assert record.counter == 1200

    def test_same_value_is_no_change(self):
        record = ProgressionRecord(ACTOR, counter=50)

        assert record.advance_counter(50) is False
        assert record.get_pending_events() == []

    def test_decrease_rejected(self):
        record = ProgressionRecord(ACTOR, counter=80)

        with pytest.raises(DomainValidationError) as exc_info:
            record.advance_counter(50)

        assert exc_info.value.field == "counter"
        assert record.counter == 80

    @pytest.mark.parametrize("value", [-1, 1.5, True])
    def test_invalid_values_rejected(self, value):
        with pytest.raises(DomainValidationError):
            ProgressionRecord.new(ACTOR).advance_counter(value)

    def test_negative_construction_rejected(self):
        with pytest.raises(DomainValidationError):
            ProgressionRecord(ACTOR, counter=-5)


# ============================================================================
# REWARD TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestRecordReward:

    def test_record_reward_appends(self):
        record = ProgressionRecord(ACTOR, counter=2000)

        record.record_reward(_event("IRON_GUT"))
        record.record_reward(_event("SMOKER", RewardDirection.REVOKE))

        assert record.milestones_granted == 2
        assert [e.item_id for e in record.history] == ["IRON_GUT", "SMOKER"]
        assert record.has_granted("IRON_GUT")
        assert record.has_revoked("SMOKER")
        assert not record.has_granted("SMOKER")

    def test_domain_events(self):
        # Arrange
        record = ProgressionRecord.new(ACTOR)

        # Act
        record.advance_counter(1200)
        record.record_reward(_event())
        events = record.clear_domain_events()

        # Assert
        assert [e.event_name for e in events] == [
            "progression.counter_synced",
            "progression.reward_granted",
        ]
        assert events[0].payload == {"actor_id": ACTOR, "previous_counter": 0, "counter": 1200}
        assert events[1].payload["item_id"] == "IRON_GUT"
        assert events[1].payload["direction"] == "grant"
        assert events[1].payload["milestones_granted"] == 1
        assert record.clear_domain_events() == []

    def test_recent_history(self):
        record = ProgressionRecord(ACTOR, history=[_event(timestamp=float(i)) for i in range(5)])

        assert [e.timestamp for e in record.recent_history(3)] == [4.0, 3.0, 2.0]
        assert record.recent_history(0) == ()


# ============================================================================
# BLOB TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestBlob:

    def test_blob_shape(self):
        record = ProgressionRecord(ACTOR, counter=1200, milestones_granted=1, history=[_event()])

        assert record.to_blob() == {
            "schema_version": BLOB_SCHEMA_VERSION,
            "counter": 1200,
            "milestones_granted": 1,
            "history": [
                {"item_id": "IRON_GUT", "direction": "grant", "rarity_tier": "uncommon", "timestamp": 12.5}
            ],
        }

    def test_blob_restores_record(self):
        original = ProgressionRecord(ACTOR, counter=3100, milestones_granted=2, history=[_event(), _event("SMOKER", RewardDirection.REVOKE)])

        restored = ProgressionRecord.from_blob(ACTOR, original.to_blob())

        assert restored.to_blob() == original.to_blob()
        assert restored.get_pending_events() == []

    def test_missing_blob_is_new_record(self):
        assert ProgressionRecord.from_blob(ACTOR, None).counter == 0

    def test_legacy_blob_migrates(self):
        # Arrange
        legacy = {
            "kills": 2345,
            "rewardsGiven": 2,
            "traitHistory": [
                {"trait": "FAST_LEARNER", "action": "added", "rarity": "rare", "timestamp": 3.0},
                {"trait": "SMOKER", "action": "removed", "rarity": "uncommon", "timestamp": 7.5},
            ],
        }

        # Act
        record = ProgressionRecord.from_blob(ACTOR, legacy)

        # Assert
        assert record.counter == 2345
        assert record.milestones_granted == 2
        assert record.history[0] == RewardEvent("FAST_LEARNER", RewardDirection.GRANT, "rare", 3.0)
        assert record.history[1].direction is RewardDirection.REVOKE
        assert record.to_blob()["schema_version"] == BLOB_SCHEMA_VERSION

    def test_empty_legacy_blob(self):
        record = ProgressionRecord.from_blob(ACTOR, {})

        assert (record.counter, record.milestones_granted) == (0, 0)

    @pytest.mark.parametrize(
        "blob",
        [
            "garbage",
            ["counter", 5],
            {"schema_version": 99, "counter": 1, "milestones_granted": 0},
            {"schema_version": 1, "counter": 1},
            {"schema_version": 1, "counter": -4, "milestones_granted": 0},
            {"schema_version": 1, "counter": 10, "milestones_granted": 0, "history": [{"item_id": "X", "direction": "up"}]},
            {"kills": "many"},
            {"traitHistory": [{"trait": "SMOKER", "action": "burned"}]},
        ],
    )
    def test_corrupted_blob_rejected(self, blob):
        with pytest.raises(RecordCorruptedError) as exc_info:
            ProgressionRecord.from_blob(ACTOR, blob)

        assert exc_info.value.actor_id == ACTOR
