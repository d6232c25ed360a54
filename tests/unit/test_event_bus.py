"""
Unit Tests for EventBus
=======================
"""

import pytest

from src.core.event import EventBus, ListenerPriority, matches


@pytest.mark.unit
class TestMatches:

    @pytest.mark.parametrize(
        "event_name, pattern, expected",
        [
            ("progression.reward_granted", "progression.reward_granted", True),
            ("progression.reward_granted", "progression.*", True),
            ("progression.reward_granted", "*", True),
            ("progression.reward_granted", "*.counter_synced", False),
            ("progression.batch_completed", "progression.*_completed", True),
            ("config.updated", "progression.*", False),
        ],
    )
    def test_patterns(self, event_name, pattern, expected):
        assert matches(event_name, pattern) is expected


@pytest.mark.unit
class TestEventBus:

    @pytest.mark.asyncio
    async def test_publish_reaches_exact_and_wildcard(self):
        # Arrange
        bus = EventBus()
        seen = []

        async def exact(payload):
            seen.append(("exact", payload["actor_id"]))

        async def wildcard(payload):
            seen.append(("wildcard", payload["actor_id"]))

        bus.subscribe("progression.reward_granted", exact)
        bus.subscribe("progression.*", wildcard)

        # Act
        await bus.publish("progression.reward_granted", {"actor_id": "p1"})

        # Assert
        assert sorted(seen) == [("exact", "p1"), ("wildcard", "p1")]

    @pytest.mark.asyncio
    async def test_priority_order(self):
        bus = EventBus()
        order = []

        async def normal(payload):
            order.append("normal")

        async def critical(payload):
            order.append("critical")

        async def high(payload):
            order.append("high")

        bus.subscribe("progression.counter_synced", normal)
        bus.subscribe("progression.counter_synced", high, priority=ListenerPriority.HIGH)
        bus.subscribe("progression.counter_synced", critical, priority=ListenerPriority.CRITICAL)

        await bus.publish("progression.counter_synced", {})

        assert order == ["critical", "high", "normal"]

    @pytest.mark.asyncio
    async def test_failing_listener_is_isolated(self):
        bus = EventBus()
        seen = []

        async def broken(payload):
            raise RuntimeError("listener bug")

        async def healthy(payload):
            seen.append(payload)

        bus.subscribe("progression.reward_failed", broken)
        bus.subscribe("progression.reward_failed", healthy)

        results = await bus.publish("progression.reward_failed", {"outcome": "apply_failed"})

        assert seen == [{"outcome": "apply_failed"}]
        assert None in results
        assert bus.get_metrics_summary()["total_errors"] == 1

    @pytest.mark.asyncio
    async def test_once_listener_runs_once(self):
        bus = EventBus()
        calls = []

        async def listener(payload):
            calls.append(payload)

        bus.subscribe("progression.batch_completed", listener, once=True)

        await bus.publish("progression.batch_completed", {"n": 1})
        await bus.publish("progression.batch_completed", {"n": 2})

        assert calls == [{"n": 1}]
        assert bus.get_listener_count() == 0

    @pytest.mark.asyncio
    async def test_sync_listener_runs_in_executor(self):
        bus = EventBus()
        seen = []

        def listener(payload):
            seen.append(payload["actor_id"])
            return "done"

        bus.subscribe("progression.reward_granted", listener)

        results = await bus.publish("progression.reward_granted", {"actor_id": "p2"})

        assert seen == ["p2"]
        assert results == ["done"]

    @pytest.mark.asyncio
    async def test_low_priority_is_background(self):
        bus = EventBus()
        seen = []

        async def listener(payload):
            seen.append(payload)

        bus.subscribe("progression.reward_granted", listener, priority=ListenerPriority.LOW)

        results = await bus.publish("progression.reward_granted", {"x": 1})
        await bus.drain_background()

        assert results == []
        assert seen == [{"x": 1}]

    def test_duplicate_subscription_prevented(self):
        bus = EventBus()

        async def listener(payload):
            return None

        first = bus.subscribe("progression.*", listener)
        second = bus.subscribe("progression.*", listener)

        assert first == second
        assert bus.get_listener_count("progression.reward_granted") == 1

    def test_unsubscribe(self):
        bus = EventBus()

        async def listener(payload):
            return None

        identifier = bus.subscribe("progression.*", listener)

        assert bus.unsubscribe("progression.*", identifier) is True
        assert bus.unsubscribe("progression.*", identifier) is False
        assert bus.get_all_events() == []

    def test_callback_signature_validated(self):
        bus = EventBus()

        async def two_args(name, payload):
            return None

        with pytest.raises(ValueError):
            bus.subscribe("progression.*", two_args)

    def test_timeouts_from_config(self):
        bus = EventBus(high_timeout_seconds=0.5)

        assert bus._critical_timeout == 5.0
        assert bus._high_timeout == 0.5
