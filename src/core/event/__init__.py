"""
Event system for BodyCount.

Provides the async EventBus used to broadcast progression changes.
"""

from .bus import EventBus, matches
from .types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
    "matches",
]
