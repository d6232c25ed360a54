"""
Unit Tests for Reward Policy Parsing
====================================

Test Coverage
-------------
- Lenient parsing of the ``rewards`` config section
- Legacy numeric encodings
- Per-item switches
- Policy sources backed by ConfigManager
"""

import pytest

from src.core.config.manager import ConfigManager
from src.modules.rewards.policy import (
    ConfigPolicySource,
    RewardPolicy,
    RewardPriority,
    ScalingMode,
    SchedulerSettings,
    StaticPolicySource,
)


# ============================================================================
# PARSING TESTS
# ============================================================================


@pytest.mark.unit
class TestRewardPolicyFromMapping:
    """Test RewardPolicy.from_mapping()."""

    def test_empty_mapping_gives_defaults(self):
        # Act
        policy = RewardPolicy.from_mapping({})

        # Assert
        assert policy == RewardPolicy()
        assert policy.kill_unit == 1000
        assert policy.scaling is ScalingMode.LINEAR
        assert policy.priority is RewardPriority.POSITIVE_FIRST
        assert policy.grant_missed_opportunities is False

    def test_none_gives_defaults(self):
        assert RewardPolicy.from_mapping(None) == RewardPolicy()

    def test_named_values(self):
        policy = RewardPolicy.from_mapping(
            {
                "kill_unit": 250,
                "scaling": "Progressive",
                "progressive_factor": 0.5,
                "priority": "negative_first",
                "grant_missed_opportunities": True,
            }
        )

        assert policy.kill_unit == 250
        assert policy.scaling is ScalingMode.PROGRESSIVE
        assert policy.progressive_factor == 0.5
        assert policy.priority is RewardPriority.NEGATIVE_FIRST
        assert policy.grant_missed_opportunities is True

    def test_legacy_numeric_values(self):
        policy = RewardPolicy.from_mapping({"scaling": 2, "priority": 3})

        assert policy.scaling is ScalingMode.PROGRESSIVE
        assert policy.priority is RewardPriority.RANDOM_PER_REWARD

    def test_enum_members_pass_through(self):
        policy = RewardPolicy.from_mapping(
            {"scaling": ScalingMode.PROGRESSIVE, "priority": RewardPriority.NEGATIVE_FIRST}
        )

        assert policy.scaling is ScalingMode.PROGRESSIVE
        assert policy.priority is RewardPriority.NEGATIVE_FIRST

    @pytest.mark.parametrize("raw", ["abc", 0, -5, None, True])
    def test_invalid_kill_unit_falls_back(self, raw):
        assert RewardPolicy.from_mapping({"kill_unit": raw}).kill_unit == 1000

    def test_unknown_scaling_falls_back(self):
        assert RewardPolicy.from_mapping({"scaling": "cubic"}).scaling is ScalingMode.LINEAR

    def test_bad_factor_falls_back(self):
        assert RewardPolicy.from_mapping({"progressive_factor": "fast"}).progressive_factor == 1.0

    def test_negative_factor_is_clamped(self):
        assert RewardPolicy.from_mapping({"progressive_factor": -2}).progressive_factor == 0.0
        assert RewardPolicy(progressive_factor=-1.5).progressive_factor == 0.0

    @pytest.mark.parametrize("factor", ["nan", "inf", float("-inf")])
    def test_non_finite_factor_falls_back(self, factor):
        assert RewardPolicy.from_mapping({"progressive_factor": factor}).progressive_factor == 1.0

    @pytest.mark.parametrize("unit", [0, -1, True, 2.5])
    def test_direct_construction_rejects_bad_kill_unit(self, unit):
        with pytest.raises(ValueError, match="kill_unit"):
            RewardPolicy(kill_unit=unit)

    def test_direct_construction_rejects_non_finite_factor(self):
        with pytest.raises(ValueError, match="progressive_factor"):
            RewardPolicy(progressive_factor=float("nan"))

    def test_string_booleans(self):
        policy = RewardPolicy.from_mapping({"positive_enabled": "false", "negative_enabled": "yes"})

        assert policy.positive_enabled is False
        assert policy.negative_enabled is True

    def test_garbage_boolean_falls_back(self):
        assert RewardPolicy.from_mapping({"negative_enabled": "maybe"}).negative_enabled is True


# ============================================================================
# ITEM SWITCH TESTS
# ============================================================================


@pytest.mark.unit
class TestAllowedItems:

    def test_missing_item_is_allowed(self):
        assert RewardPolicy().is_item_allowed("SPEED_DEMON")

    def test_only_explicit_false_disallows(self):
        policy = RewardPolicy.from_mapping(
            {"allowed_items": {"SPEED_DEMON": False, "DEXTROUS": "no", "SMOKER": True}}
        )

        assert not policy.is_item_allowed("SPEED_DEMON")
        assert policy.is_item_allowed("DEXTROUS")
        assert policy.is_item_allowed("SMOKER")

    def test_non_mapping_is_ignored(self):
        policy = RewardPolicy.from_mapping({"allowed_items": ["SPEED_DEMON"]})
        assert policy.is_item_allowed("SPEED_DEMON")

    def test_allowed_items_are_read_only(self):
        policy = RewardPolicy(allowed_items={"SMOKER": False})

        with pytest.raises(TypeError):
            policy.allowed_items["SMOKER"] = True  # type: ignore[index]


# ============================================================================
# LABEL TESTS
# ============================================================================


@pytest.mark.unit
class TestLabels:

    def test_scaling_labels(self):
        assert RewardPolicy().scaling_label == "Linear"
        progressive = RewardPolicy(scaling=ScalingMode.PROGRESSIVE, progressive_factor=1.5)
        assert progressive.scaling_label == "Progressive (x1.5)"

    def test_priority_labels(self):
        assert RewardPolicy().priority_label == "Gain Positive First"
        assert RewardPolicy(priority=RewardPriority.NEGATIVE_FIRST).priority_label == "Remove Negative First"
        assert RewardPolicy(priority=RewardPriority.RANDOM_PER_REWARD).priority_label == "Random"

    def test_any_enabled(self):
        assert RewardPolicy().any_enabled
        assert RewardPolicy(positive_enabled=False).any_enabled
        assert not RewardPolicy(positive_enabled=False, negative_enabled=False).any_enabled


# ============================================================================
# POLICY SOURCE TESTS
# ============================================================================


@pytest.mark.unit
class TestPolicySources:

    def test_static_source_defaults(self):
        assert StaticPolicySource().current() == RewardPolicy()

    def test_config_source_reads_yaml_defaults(self):
        policy = ConfigPolicySource().current()

        assert policy.kill_unit == 1000
        assert policy.scaling is ScalingMode.LINEAR

    def test_config_source_sees_runtime_overrides(self):
        # Arrange
        source = ConfigPolicySource()
        before = source.current()

        # Act
        ConfigManager.set("rewards.kill_unit", 250)
        ConfigManager.set("rewards.priority", "negative_first")
        after = source.current()

        # Assert
        assert before.kill_unit == 1000
        assert after.kill_unit == 250
        assert after.priority is RewardPriority.NEGATIVE_FIRST


@pytest.mark.unit
class TestSchedulerSettings:

    def test_from_config_reads_yaml(self):
        settings = SchedulerSettings.from_config()

        assert settings.pending_delay_ticks == 90
        assert settings.notification_delay_ticks == 200
        assert settings.final_notice_delay_ticks == 90
        assert settings.proximity_fraction == 0.1

    def test_invalid_values_fall_back(self):
        settings = SchedulerSettings.from_mapping(
            {"pending_delay_ticks": -1, "proximity_fraction": "wide"}
        )

        assert settings.pending_delay_ticks == 90
        assert settings.proximity_fraction == 0.1
