"""
Command dispatch in front of the progression service.

Purpose
-------
Turn client commands into service calls and service results into ordered
reply messages.

- `AuthorityServer`: networked mode. Async, one lock per actor so the
  pool-rebuild-then-apply sequence of one actor never interleaves with
  itself, and domain events published on the EventBus after every command.
  A lock lives only while some command for its actor holds or awaits it.
- `LocalAuthority`: single-actor mode. The same replies, produced
  synchronously in-process for a scheduler running without a server.

Reply order
-----------
- SyncCounter -> CounterSynced
- RequestReward, granted -> RewardGranted..., CounterSynced, BatchComplete
- RequestReward, refused -> RewardError | NoRewardAvailable, CounterSynced
- RequestReward, internal failure -> RewardError("internal_error")
- SyncCounter, internal failure -> nothing
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from src.core.exceptions import (
    BodyCountInfrastructureException,
    MessageDecodeError,
    get_error_severity,
    should_alert,
)
from src.core.logging.logger import LogContext, get_logger
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
    decode_client_message,
    encode_message,
)
from src.modules.rewards.service import BatchResult, ProgressionService, RewardOutcome
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import BodyCountDomainException

logger = get_logger(__name__)

INTERNAL_ERROR_REASON = "internal_error"


def build_reply_messages(result: BatchResult) -> List[ServerMessage]:
    synced = CounterSynced(result.counter, result.milestones_granted)
    if result.granted:
        replies: List[ServerMessage] = [
            RewardGranted(event.item_id, event.direction, event.rarity_tier)
            for event in result.events
        ]
        replies.append(synced)
        replies.append(
            BatchComplete(result.total_granted, result.remaining_milestones, result.exhausted)
        )
        return replies
    if result.outcome is RewardOutcome.NO_REWARD_AVAILABLE:
        return [NoRewardAvailable(result.outcome.value), synced]
    return [RewardError(result.outcome.value, result.reason), synced]


def _dispatch(service: ProgressionService, actor_id: str, message: ClientMessage) -> Tuple[List[ServerMessage], Optional[BatchResult]]:
    """
    Run one decoded command against the service.

    Raises:
        BodyCountInfrastructureException: Persistence or host failures
    """
    if isinstance(message, SyncCounter):
        counter = service.reconcile_counter(actor_id, message.counter)
        record = service.get_record(actor_id)
        return [CounterSynced(counter, record.milestones_granted)], None
    result = service.request_reward(actor_id, message.counter)
    return build_reply_messages(result), result


class AuthorityServer(BaseService):
    """
    Networked authority: decodes commands, serializes them per actor and
    publishes progression events.

    Args:
        service: The progression service that owns the records
        event_bus: Bus for ``progression.*`` events (optional)
    """

    def __init__(self, service: ProgressionService, event_bus: Any = None) -> None:
        super().__init__(logger, event_bus)
        self.service = service
        # actor_id -> [lock, holders and waiters]
        self._locks: Dict[str, List[Any]] = {}

    @asynccontextmanager
    async def _actor_lock(self, actor_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(actor_id)
        if entry is None:
            entry = self._locks[actor_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[actor_id]

    async def handle_command(self, actor_id: str, command: Any, payload: Any) -> List[Tuple[str, Dict[str, Any]]]:
        """
        Decode and handle one raw command; returns encoded replies.

        Malformed commands are logged and dropped without touching the record.
        """
        try:
            message = decode_client_message(command, payload)
        except MessageDecodeError as exc:
            self.log.warning(
                "Dropped malformed client command",
                extra={"actor_id": actor_id, **exc.details},
            )
            return []
        return [encode_message(reply) for reply in await self.handle(actor_id, message)]

    async def handle(self, actor_id: str, message: ClientMessage) -> List[ServerMessage]:
        async with self._actor_lock(actor_id):
            async with LogContext(actor_id=actor_id, command=message.COMMAND, component="authority"):
                try:
                    replies, result = _dispatch(self.service, actor_id, message)
                except (BodyCountInfrastructureException, BodyCountDomainException) as exc:
                    self.log_error("handle_command", exc, actor_id=actor_id, command=message.COMMAND)
                    self.service.drain_events(actor_id)
                    if isinstance(message, RequestReward):
                        return [RewardError(INTERNAL_ERROR_REASON, str(exc))]
                    return []

                await self._publish(actor_id, result)
                return replies

    async def _publish(self, actor_id: str, result: Optional[BatchResult]) -> None:
        for event in self.service.drain_events(actor_id):
            await self.emit_event(event.event_name, event.payload)
        if result is None:
            return
        if result.granted:
            await self.emit_event(
                "progression.batch_completed",
                {
                    "actor_id": actor_id,
                    "total_granted": result.total_granted,
                    "remaining_milestones": result.remaining_milestones,
                    "exhausted": result.exhausted,
                },
            )
        else:
            await self.emit_event(
                "progression.reward_failed",
                {"actor_id": actor_id, "outcome": result.outcome.value, "reason": result.reason},
            )


class LocalAuthority:
    """
    Synchronous in-process authority for single-actor (no server) play.

    Reward requests claim one reward at a time; the scheduler paces any
    catch-up itself. Domain events are discarded.
    """

    def __init__(self, service: ProgressionService) -> None:
        self.service = service

    def dispatch(self, actor_id: str, message: ClientMessage) -> List[ServerMessage]:
        with LogContext(actor_id=actor_id, command=message.COMMAND, component="local_authority"):
            try:
                if isinstance(message, RequestReward):
                    result = self.service.request_reward(actor_id, message.counter, allow_batch=False)
                    replies = build_reply_messages(result)
                else:
                    replies, _ = _dispatch(self.service, actor_id, message)
            except (BodyCountInfrastructureException, BodyCountDomainException) as exc:
                logger.log(
                    logging.ERROR if should_alert(exc) else logging.WARNING,
                    "Local reward command failed",
                    extra={
                        "actor_id": actor_id,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "severity": get_error_severity(exc).value,
                    },
                )
                self.service.drain_events(actor_id)
                if isinstance(message, RequestReward):
                    return [RewardError(INTERNAL_ERROR_REASON, str(exc))]
                return []
            self.service.drain_events(actor_id)
            return replies
