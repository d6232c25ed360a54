"""
In-process loopback transport between client schedulers and an AuthorityServer.

Messages are encoded to ``(command, payload)`` pairs on send and decoded on
delivery, so the wire codec is exercised exactly as over a real channel.
Per-actor order is preserved in both directions.
"""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Tuple

from src.core.exceptions import MessageDecodeError
from src.core.logging.logger import get_logger
from src.modules.rewards.authority import AuthorityServer
from src.modules.rewards.messages import (
    ClientMessage,
    ServerMessage,
    decode_server_message,
    encode_message,
)

logger = get_logger(__name__)

Envelope = Tuple[str, Dict[str, Any]]


class LoopbackTransport:
    """
    Ordered, at-most-once delivery.

    `drop_replies(actor_id, count)` discards the next `count` replies for the
    actor, modelling a lost reply.
    """

    def __init__(self, authority: AuthorityServer) -> None:
        self.authority = authority
        self._outbound: Dict[str, Deque[Envelope]] = defaultdict(deque)
        self._inbound: Dict[str, Deque[Envelope]] = defaultdict(deque)
        self._drops: Dict[str, int] = defaultdict(int)

    def send(self, actor_id: str, message: ClientMessage) -> None:
        self._outbound[actor_id].append(encode_message(message))

    def send_raw(self, actor_id: str, command: Any, payload: Any) -> None:
        self._outbound[actor_id].append((command, payload))

    def drop_replies(self, actor_id: str, count: int = 1) -> None:
        self._drops[actor_id] += count

    def pending(self, actor_id: str) -> int:
        return len(self._outbound[actor_id])

    async def pump(self) -> int:
        """Deliver every queued command to the authority. Returns the count."""
        delivered = 0
        for actor_id, queue in list(self._outbound.items()):
            while queue:
                command, payload = queue.popleft()
                replies = await self.authority.handle_command(actor_id, command, payload)
                delivered += 1
                for reply in replies:
                    if self._drops[actor_id] > 0:
                        self._drops[actor_id] -= 1
                        logger.debug(
                            "Reply dropped",
                            extra={"actor_id": actor_id, "command": reply[0]},
                        )
                        continue
                    self._inbound[actor_id].append(reply)
        return delivered

    def receive(self, actor_id: str) -> List[ServerMessage]:
        """Drain and decode the replies queued for the actor."""
        queue = self._inbound[actor_id]
        messages: List[ServerMessage] = []
        while queue:
            command, payload = queue.popleft()
            try:
                messages.append(decode_server_message(command, payload))
            except MessageDecodeError as exc:
                logger.warning(
                    "Dropped malformed server message",
                    extra={"actor_id": actor_id, **exc.details},
                )
        return messages
