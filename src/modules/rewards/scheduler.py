"""
Client reconciliation and notification scheduler.

Purpose
-------
A per-actor, tick-driven state machine. Once per host tick it watches the
actor's counter, decides whether to sync, request a reward or stay quiet,
drains paced catch-up requests, and releases reward notifications one at a
time so bursts stay readable.

Design Notes
------------
- All mutable state lives in one `SchedulerState` per actor. The scheduler
  mutates it only from local counter reads and from authority messages.
- Networked mode returns outgoing messages in `TickEffects.outgoing` for the
  caller to send. Single-actor mode hands them to a `LocalAuthority` within
  the same tick and processes the replies immediately.
- There is no retry timer. A lost reply is recovered by the next observed
  counter delta that crosses the next threshold.
- The final "all rewards granted" notice joins the notification queue behind
  any rewards still waiting, so it is always the last thing shown. Once it
  has been shown the scheduler only mirrors the counter and finishes the
  queue; `on_actor_created()` resets everything.

Tick order
----------
1. Counter delta detection (sync / request / proximity sync)
2. Pending catch-up drain
3. Final notice countdown
4. Notification drain
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Deque, List, Optional, Tuple

from src.core.exceptions import HostError
from src.core.logging.logger import get_logger
from src.domain.models.progression import RewardDirection
from src.modules.rewards import constants
from src.modules.rewards.catalog import format_display_name
from src.modules.rewards.formulas import milestone_threshold, milestones_reached, proximity_band
from src.modules.rewards.host import CounterSource
from src.modules.rewards.messages import (
    BatchComplete,
    ClientMessage,
    CounterSynced,
    NoRewardAvailable,
    RequestReward,
    RewardError,
    RewardGranted,
    ServerMessage,
    SyncCounter,
)
from src.modules.rewards.policy import PolicySource, SchedulerSettings

if TYPE_CHECKING:
    from src.modules.rewards.authority import LocalAuthority

logger = get_logger(__name__)

_INFO_COLOR: Tuple[float, float, float] = (1.0, 1.0, 0.4)
_TERMINAL_COLOR: Tuple[float, float, float] = (1.0, 0.84, 0.0)


class SchedulerMode(str, Enum):
    NETWORKED = "networked"
    SINGLE_ACTOR = "single_actor"


class NotificationKind(str, Enum):
    REWARD = "reward"
    INFO = "info"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    text: str
    color: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    item_id: Optional[str] = None
    direction: Optional[RewardDirection] = None


@dataclass
class TickEffects:
    """What one tick produced: messages to send and notifications to show."""

    outgoing: List[ClientMessage] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)


@dataclass
class SchedulerState:
    """Local mirror plus UI pacing state for one actor. Never authoritative."""

    last_known_counter: int = 0
    mirror_counter: int = 0
    mirror_granted: int = 0
    pending_batch: int = 0
    pending_timer: int = 0
    exhausted: bool = False
    queue: Deque[Notification] = field(default_factory=deque)
    notification_timer: int = 0
    showing: bool = False
    final_notice_scheduled: bool = False
    final_notice_timer: int = 0
    final_notice_queued: bool = False
    final_notice_shown: bool = False

    def reset(self, counter: int = 0) -> None:
        """Actor recreation: clear every latch, queue and timer."""
        self.last_known_counter = counter
        self.mirror_counter = counter
        self.mirror_granted = 0
        self.pending_batch = 0
        self.pending_timer = 0
        self.exhausted = False
        self.queue.clear()
        self.notification_timer = 0
        self.showing = False
        self.final_notice_scheduled = False
        self.final_notice_timer = 0
        self.final_notice_queued = False
        self.final_notice_shown = False


class ClientScheduler:
    """
    Tick-driven scheduler for one actor.

    Args:
        actor_id: The watched actor
        counters: Host counter source
        policies: Policy source, read fresh each tick
        mode: NETWORKED or SINGLE_ACTOR
        settings: Tick pacing; defaults to ``rewards.scheduler`` config
        local_authority: Required in SINGLE_ACTOR mode
        translate: Optional localisation lookup for item names
    """

    def __init__(
        self,
        actor_id: str,
        counters: CounterSource,
        policies: PolicySource,
        *,
        mode: SchedulerMode = SchedulerMode.NETWORKED,
        settings: Optional[SchedulerSettings] = None,
        local_authority: Optional[LocalAuthority] = None,
        translate: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        if mode is SchedulerMode.SINGLE_ACTOR and local_authority is None:
            raise ValueError("single-actor mode needs a local authority")
        self.actor_id = actor_id
        self.counters = counters
        self.policies = policies
        self.mode = mode
        self.settings = settings or SchedulerSettings.from_config()
        self.local_authority = local_authority
        self.translate = translate
        self.state = SchedulerState()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def on_actor_created(self) -> TickEffects:
        """Reset for a new character and ask the authority for its record."""
        counter = self._read_counter()
        self.state.reset(counter or 0)
        effects = TickEffects()
        self._send(SyncCounter(self.state.last_known_counter), effects)
        logger.debug(
            "Scheduler reset for new actor",
            extra={"actor_id": self.actor_id, "counter": self.state.last_known_counter},
        )
        return effects

    # ------------------------------------------------------------------ #
    # Tick
    # ------------------------------------------------------------------ #

    def step(self) -> TickEffects:
        effects = TickEffects()
        state = self.state
        if not self.counters.is_alive(self.actor_id):
            return effects

        if state.final_notice_shown:
            counter = self._read_counter()
            if counter is not None and counter > state.last_known_counter:
                state.last_known_counter = counter
                state.mirror_counter = max(state.mirror_counter, counter)
            self._drain_notifications(effects)
            return effects

        counter = self._read_counter()
        if counter is not None and counter > state.last_known_counter:
            state.last_known_counter = counter
            state.mirror_counter = max(state.mirror_counter, counter)
            self._on_counter_delta(counter, effects)

        self._drain_pending(effects)
        self._tick_final_notice()
        self._drain_notifications(effects)
        return effects

    def _on_counter_delta(self, counter: int, effects: TickEffects) -> None:
        state = self.state
        policy = self.policies.current()
        next_threshold = milestone_threshold(state.mirror_granted + 1, policy)

        if counter >= next_threshold:
            if state.exhausted:
                if self.mode is SchedulerMode.NETWORKED:
                    self._send(SyncCounter(counter), effects)
                return

            self._send(SyncCounter(counter), effects)
            if self.mode is SchedulerMode.SINGLE_ACTOR:
                missed = milestones_reached(counter, policy) - state.mirror_granted
                if missed > 1:
                    state.pending_batch = missed
                    state.pending_timer = self.settings.pending_delay_ticks
                    effects.notifications.append(self._info(missed))
                    return
            self._send(RequestReward(counter), effects)
            return

        remaining = next_threshold - counter
        band = proximity_band(
            policy.kill_unit,
            self.settings.proximity_floor,
            self.settings.proximity_ceiling,
            self.settings.proximity_fraction,
        )
        if 0 < remaining <= band:
            self._send(SyncCounter(counter), effects)

    def _drain_pending(self, effects: TickEffects) -> None:
        state = self.state
        if state.pending_batch <= 0 or state.exhausted:
            return
        state.pending_timer += 1
        if state.pending_timer >= self.settings.pending_delay_ticks:
            state.pending_batch -= 1
            state.pending_timer = 0
            self._send(RequestReward(state.last_known_counter), effects)

    def _drain_notifications(self, effects: TickEffects) -> None:
        state = self.state
        if not state.showing:
            if state.queue:
                self._show(state.queue.popleft(), effects)
                state.showing = True
                state.notification_timer = 0
            return

        state.notification_timer += 1
        if state.notification_timer < self.settings.notification_delay_ticks:
            return
        state.notification_timer = 0
        if state.queue:
            self._show(state.queue.popleft(), effects)
        else:
            state.showing = False

    def _show(self, notification: Notification, effects: TickEffects) -> None:
        effects.notifications.append(notification)
        if notification.kind is NotificationKind.TERMINAL:
            self.state.final_notice_shown = True

    def _tick_final_notice(self) -> None:
        state = self.state
        if not state.final_notice_scheduled or state.final_notice_queued:
            return
        state.final_notice_timer += 1
        if state.final_notice_timer >= self.settings.final_notice_delay_ticks:
            state.final_notice_queued = True
            state.queue.append(
                Notification(NotificationKind.TERMINAL, constants.FINAL_NOTICE_TEXT, _TERMINAL_COLOR)
            )

    # ------------------------------------------------------------------ #
    # Authority messages
    # ------------------------------------------------------------------ #

    def handle_server_message(self, message: ServerMessage) -> List[Notification]:
        """
        Apply one authority message to the mirror.

        Returns notifications to show right away; reward notifications are
        queued and released by `step()`.
        """
        state = self.state
        immediate: List[Notification] = []

        if isinstance(message, RewardGranted):
            state.queue.append(self._reward_notification(message))
        elif isinstance(message, BatchComplete):
            if message.total_granted > 1:
                immediate.append(self._info(message.total_granted))
            if message.exhausted:
                state.pending_batch = 0
                self._latch_exhausted()
            elif message.remaining_milestones > 0:
                state.pending_batch = message.remaining_milestones
                state.pending_timer = 0
            else:
                state.pending_batch = 0
        elif isinstance(message, CounterSynced):
            state.mirror_counter = message.counter
            if message.counter > state.last_known_counter:
                state.last_known_counter = message.counter
            state.mirror_granted = message.milestones_granted
        elif isinstance(message, RewardError):
            state.pending_batch = 0
            logger.debug(
                "Reward request refused",
                extra={"actor_id": self.actor_id, "reason_code": message.reason_code},
            )
        elif isinstance(message, NoRewardAvailable):
            state.pending_batch = 0
            self._latch_exhausted()
        return immediate

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _read_counter(self) -> Optional[int]:
        try:
            return int(self.counters.read_counter(self.actor_id))
        except HostError as exc:
            logger.debug(
                "Counter read failed; no update this tick",
                extra={"actor_id": self.actor_id, "error": str(exc)},
            )
            return None

    def _send(self, message: ClientMessage, effects: TickEffects) -> None:
        if self.mode is SchedulerMode.NETWORKED:
            effects.outgoing.append(message)
            return
        for reply in self.local_authority.dispatch(self.actor_id, message):
            effects.notifications.extend(self.handle_server_message(reply))

    def _latch_exhausted(self) -> None:
        state = self.state
        if state.exhausted:
            return
        state.exhausted = True
        if not state.final_notice_queued:
            state.final_notice_scheduled = True
            state.final_notice_timer = 0
        logger.info("Rewards exhausted for actor", extra={"actor_id": self.actor_id})

    def _reward_notification(self, message: RewardGranted) -> Notification:
        name = format_display_name(message.item_id, self.translate)
        template = (
            constants.GAINED_TEMPLATE
            if message.direction is RewardDirection.GRANT
            else constants.LOST_TEMPLATE
        )
        return Notification(
            NotificationKind.REWARD,
            template.format(name=name),
            constants.RARITY_COLORS.get(message.rarity_tier, constants.RARITY_COLORS["common"]),
            message.item_id,
            message.direction,
        )

    @staticmethod
    def _info(count: int) -> Notification:
        return Notification(NotificationKind.INFO, constants.BATCH_TEMPLATE.format(count=count), _INFO_COLOR)
