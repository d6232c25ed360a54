"""
Unit Tests for ClientScheduler
==============================

Purpose
-------
Drive the per-actor scheduler tick by tick and check what it sends and what
it shows. Pacing comes from the `fast_settings` fixture: pending requests
every 3 ticks, one notification per 5 ticks, final notice after 4 ticks.

Test Coverage
-------------
- Networked mode: sync, request and proximity sync decisions
- Notification pacing and texts
- Catch-up pacing driven by BatchComplete
- Exhaustion latch and the final notice
- Dead actors, failed counter reads and lost replies
- Single-actor mode through LocalAuthority
"""

import pytest

from src.domain.models.progression import RewardDirection
from src.modules.rewards import constants
from src.modules.rewards.messages import (
    BatchComplete,
    CounterSynced,
    NoRewardAvailable,
    RequestReward,
    RewardError,
    RewardGranted,
    SyncCounter,
)
from src.modules.rewards.scheduler import ClientScheduler, NotificationKind, SchedulerMode
from tests.conftest import ACTOR, give_everything


@pytest.fixture
def scheduler(host, policy_source, fast_settings):
    return ClientScheduler(ACTOR, host, policy_source, mode=SchedulerMode.NETWORKED, settings=fast_settings)


@pytest.fixture
def solo(host, policy_source, fast_settings, local_authority):
    return ClientScheduler(
        ACTOR,
        host,
        policy_source,
        mode=SchedulerMode.SINGLE_ACTOR,
        settings=fast_settings,
        local_authority=local_authority,
    )


def _granted(item_id="SPEED_DEMON", direction=RewardDirection.GRANT, rarity="common"):
    return RewardGranted(item_id, direction, rarity)


def _run(scheduler, ticks):
    return [scheduler.step() for _ in range(ticks)]


# ============================================================================
# NETWORKED COUNTER TESTS
# ============================================================================


@pytest.mark.unit
class TestNetworkedCounter:

    def test_actor_created_syncs(self, scheduler, host):
        host.set_counter(ACTOR, 250)

        effects = scheduler.on_actor_created()

        assert effects.outgoing == [SyncCounter(250)]
        assert scheduler.state.last_known_counter == 250

    def test_quiet_tick(self, scheduler):
        scheduler.on_actor_created()

        effects = scheduler.step()

        assert effects.outgoing == []
        assert effects.notifications == []

    def test_proximity_sync(self, scheduler, host):
        # Arrange
        scheduler.on_actor_created()

        # Act
        host.set_counter(ACTOR, 850)
        far = scheduler.step()
        host.set_counter(ACTOR, 950)
        near = scheduler.step()

        # Assert
        assert far.outgoing == []
        assert near.outgoing == [SyncCounter(950)]

    def test_crossing_requests_reward(self, scheduler, host):
        scheduler.on_actor_created()
        host.set_counter(ACTOR, 1000)

        effects = scheduler.step()

        assert effects.outgoing == [SyncCounter(1000), RequestReward(1000)]

    def test_multi_milestone_jump_sends_one_request(self, scheduler, host):
        scheduler.on_actor_created()
        host.set_counter(ACTOR, 4200)

        effects = scheduler.step()

        assert effects.outgoing == [SyncCounter(4200), RequestReward(4200)]
        assert effects.notifications == []

    def test_lost_reply_retried_on_next_delta(self, scheduler, host):
        # Arrange
        scheduler.on_actor_created()
        host.set_counter(ACTOR, 1000)
        scheduler.step()

        # Act
        host.add_kills(ACTOR)
        retry = scheduler.step()

        # Assert
        assert retry.outgoing == [SyncCounter(1001), RequestReward(1001)]

    def test_no_retry_without_delta(self, scheduler, host):
        scheduler.on_actor_created()
        host.set_counter(ACTOR, 1000)
        scheduler.step()

        assert all(effects.outgoing == [] for effects in _run(scheduler, 10))

    def test_authority_counter_prevents_phantom_delta(self, scheduler, host):
        scheduler.on_actor_created()
        host.set_counter(ACTOR, 3000)

        scheduler.handle_server_message(CounterSynced(3000, 3))
        effects = scheduler.step()

        assert effects.outgoing == []
        assert scheduler.state.mirror_granted == 3

    def test_dead_actor_is_skipped(self, scheduler, host):
        scheduler.on_actor_created()
        host.set_counter(ACTOR, 1000)
        host.kill(ACTOR)

        effects = scheduler.step()

        assert effects.outgoing == []
        assert scheduler.state.last_known_counter == 0

    def test_failed_read_skips_detection_only(self, scheduler, host):
        # Arrange
        scheduler.on_actor_created()
        scheduler.handle_server_message(_granted())
        host.set_counter(ACTOR, 1000)
        host.inject_failure("read_counter")

        # Act
        failed = scheduler.step()
        recovered = scheduler.step()

        # Assert
        assert failed.outgoing == []
        assert [n.kind for n in failed.notifications] == [NotificationKind.REWARD]
        assert recovered.outgoing == [SyncCounter(1000), RequestReward(1000)]

    def test_counter_read_failure_on_create(self, scheduler, host):
        host.inject_failure("read_counter")

        assert scheduler.on_actor_created().outgoing == [SyncCounter(0)]


# ============================================================================
# NOTIFICATION TESTS
# ============================================================================


@pytest.mark.unit
class TestNotifications:

    def test_rewards_shown_one_at_a_time(self, scheduler):
        # Arrange
        scheduler.on_actor_created()
        for item_id in ("SPEED_DEMON", "DEXTROUS", "IRON_GUT"):
            scheduler.handle_server_message(_granted(item_id))

        # Act
        ticks = _run(scheduler, 16)

        # Assert
        shown_at = [i + 1 for i, effects in enumerate(ticks) if effects.notifications]
        assert shown_at == [1, 6, 11]
        assert scheduler.state.showing is False

    def test_late_arrival_waits_for_delay(self, scheduler):
        scheduler.on_actor_created()
        scheduler.handle_server_message(_granted("SPEED_DEMON"))
        first = scheduler.step()

        scheduler.handle_server_message(_granted("DEXTROUS"))
        later = _run(scheduler, 5)

        assert first.notifications[0].item_id == "SPEED_DEMON"
        assert [bool(effects.notifications) for effects in later] == [False] * 4 + [True]

    def test_reward_texts(self, scheduler):
        scheduler.on_actor_created()
        scheduler.handle_server_message(_granted("SMOKER", RewardDirection.REVOKE, "uncommon"))

        notification = scheduler.step().notifications[0]

        assert notification.text == "Lost: Smoker"
        assert notification.color == constants.RARITY_COLORS["uncommon"]
        assert notification.direction is RewardDirection.REVOKE

    def test_translated_name(self, host, policy_source, fast_settings):
        scheduler = ClientScheduler(
            ACTOR,
            host,
            policy_source,
            settings=fast_settings,
            translate={"UI_trait_LessSleep": "Wakeful"}.get,
        )
        scheduler.handle_server_message(_granted("NEEDS_LESS_SLEEP"))

        assert scheduler.step().notifications[0].text == "Gained: Wakeful"

    def test_batch_summary_is_immediate(self, scheduler):
        summary = scheduler.handle_server_message(BatchComplete(2, 0))

        assert [n.text for n in summary] == ["2 rewards earned!"]
        assert summary[0].kind is NotificationKind.INFO
        assert scheduler.handle_server_message(BatchComplete(1, 0)) == []


# ============================================================================
# CATCH-UP PACING TESTS
# ============================================================================


@pytest.mark.unit
class TestPendingRequests:

    def test_remaining_milestones_paced(self, scheduler):
        # Arrange
        scheduler.on_actor_created()
        scheduler.handle_server_message(CounterSynced(5000, 2))

        # Act
        scheduler.handle_server_message(BatchComplete(2, 3))
        ticks = _run(scheduler, 6)

        # Assert
        outgoing = [effects.outgoing for effects in ticks]
        assert outgoing == [[], [], [RequestReward(5000)], [], [], [RequestReward(5000)]]
        assert scheduler.state.pending_batch == 1

    def test_error_clears_pending(self, scheduler):
        scheduler.handle_server_message(BatchComplete(1, 4))

        scheduler.handle_server_message(RewardError("apply_failed"))

        assert scheduler.state.pending_batch == 0

    def test_exhausted_batch_latches(self, scheduler):
        scheduler.handle_server_message(BatchComplete(1, 2, exhausted=True))

        assert scheduler.state.pending_batch == 0
        assert scheduler.state.exhausted is True
        assert all(effects.outgoing == [] for effects in _run(scheduler, 5))


# ============================================================================
# EXHAUSTION TESTS
# ============================================================================


@pytest.mark.unit
class TestExhaustion:

    def test_exhausted_crossing_only_syncs(self, scheduler, host):
        scheduler.on_actor_created()
        scheduler.handle_server_message(NoRewardAvailable())
        host.set_counter(ACTOR, 2000)

        effects = scheduler.step()

        assert effects.outgoing == [SyncCounter(2000)]

    def test_final_notice_after_delay(self, scheduler):
        # Arrange
        scheduler.on_actor_created()

        # Act
        scheduler.handle_server_message(NoRewardAvailable())
        ticks = _run(scheduler, 4)

        # Assert
        kinds = [[n.kind for n in effects.notifications] for effects in ticks]
        assert kinds == [[], [], [], [NotificationKind.TERMINAL]]
        assert ticks[3].notifications[0].text == "All rewards granted!"

    def test_after_final_notice_only_mirrors(self, scheduler, host):
        scheduler.on_actor_created()
        scheduler.handle_server_message(NoRewardAvailable())
        _run(scheduler, 4)

        host.set_counter(ACTOR, 5000)
        effects = scheduler.step()

        assert effects.outgoing == []
        assert effects.notifications == []
        assert scheduler.state.last_known_counter == 5000

    def test_final_notice_waits_behind_queued_rewards(self, scheduler):
        """Rewards still queued at exhaustion are all shown, terminal notice last."""
        # Arrange
        scheduler.on_actor_created()
        for item_id in ("SPEED_DEMON", "DEXTROUS", "IRON_GUT"):
            scheduler.handle_server_message(_granted(item_id))

        # Act
        scheduler.handle_server_message(BatchComplete(3, 0, exhausted=True))
        ticks = _run(scheduler, 40)

        # Assert
        shown = [(i + 1, n) for i, effects in enumerate(ticks) for n in effects.notifications]
        assert [tick for tick, _ in shown] == [1, 6, 11, 16]
        assert [n.item_id for _, n in shown[:3]] == ["SPEED_DEMON", "DEXTROUS", "IRON_GUT"]
        assert shown[3][1].kind is NotificationKind.TERMINAL
        assert scheduler.state.final_notice_shown is True
        assert not scheduler.state.queue

    def test_late_reward_after_final_notice_still_shown(self, scheduler):
        scheduler.on_actor_created()
        scheduler.handle_server_message(NoRewardAvailable())
        _run(scheduler, 4)

        scheduler.handle_server_message(_granted("IRON_GUT"))
        ticks = _run(scheduler, 10)

        shown = [n.item_id for effects in ticks for n in effects.notifications]
        assert shown == ["IRON_GUT"]

    def test_actor_recreation_resets_latches(self, scheduler, host):
        # Arrange
        scheduler.on_actor_created()
        scheduler.handle_server_message(NoRewardAvailable())
        _run(scheduler, 4)

        # Act
        host.spawn(ACTOR)
        scheduler.on_actor_created()
        host.set_counter(ACTOR, 1000)
        effects = scheduler.step()

        # Assert
        assert scheduler.state.final_notice_shown is False
        assert effects.outgoing == [SyncCounter(1000), RequestReward(1000)]


# ============================================================================
# SINGLE-ACTOR MODE TESTS
# ============================================================================


@pytest.mark.unit
class TestSingleActorMode:

    def test_requires_local_authority(self, host, policy_source, fast_settings):
        with pytest.raises(ValueError):
            ClientScheduler(ACTOR, host, policy_source, mode=SchedulerMode.SINGLE_ACTOR, settings=fast_settings)

    def test_reward_applied_in_same_tick(self, solo, host, service):
        # Arrange
        solo.on_actor_created()
        host.set_counter(ACTOR, 1000)

        # Act
        effects = solo.step()

        # Assert
        assert effects.outgoing == []
        assert [n.kind for n in effects.notifications] == [NotificationKind.REWARD]
        assert len(host.items_of(ACTOR)) == 1
        assert solo.state.mirror_granted == 1
        assert service.get_record(ACTOR).milestones_granted == 1

    def test_missed_milestones_claimed_one_by_one(self, solo, host, service):
        # Arrange
        solo.on_actor_created()
        host.set_counter(ACTOR, 3500)

        # Act
        first = solo.step()
        granted_after_first = service.get_record(ACTOR).milestones_granted
        _run(solo, 10)

        # Assert
        assert [n.text for n in first.notifications][0] == "3 rewards earned!"
        assert first.notifications[1].kind is NotificationKind.REWARD
        assert granted_after_first == 1
        assert service.get_record(ACTOR).milestones_granted == 3
        assert solo.state.pending_batch == 0
        assert len(host.items_of(ACTOR)) == 3

    def test_new_character_earns_from_scratch(self, solo, host, service):
        """A respawned character is not held back by the previous one's grants."""
        # Arrange
        solo.on_actor_created()
        host.set_counter(ACTOR, 3000)
        _run(solo, 20)
        assert service.get_record(ACTOR).milestones_granted == 3

        # Act
        host.spawn(ACTOR)
        solo.on_actor_created()
        host.set_counter(ACTOR, 1000)
        effects = solo.step()

        # Assert
        assert [n.kind for n in effects.notifications] == [NotificationKind.REWARD]
        assert len(host.items_of(ACTOR)) == 1
        assert solo.state.mirror_granted == 1
        assert service.get_record(ACTOR).milestones_granted == 1

    def test_exhaustion_and_final_notice(self, solo, host, catalog, local_authority, mocker):
        # Arrange
        give_everything(host, catalog)
        solo.on_actor_created()
        host.set_counter(ACTOR, 1000)

        # Act
        ticks = _run(solo, 4)
        dispatch = mocker.spy(local_authority, "dispatch")
        host.set_counter(ACTOR, 2000)
        quiet = solo.step()

        # Assert
        assert solo.state.exhausted is True
        assert [n.kind for n in ticks[3].notifications] == [NotificationKind.TERMINAL]
        assert quiet.notifications == []
        assert dispatch.call_count == 0
