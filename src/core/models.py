"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ChatEvent:
    """Minimal inbound chat message used by the dispatch pipeline."""

    platform: str
    sender_uid: str
    guild_id: Optional[str]
    gid: Optional[str]
    content: str
    timestamp: int


@dataclass(frozen=True)
class Member:
    """A guild member as reported by the chat platform."""

    user_id: str
    name: Optional[str] = None
    nick: Optional[str] = None


@dataclass(frozen=True)
class Caller:
    """Who issued a command and where it was issued from."""

    uid: str
    platform: str
    guild_id: Optional[str] = None
    gid: Optional[str] = None


@dataclass(frozen=True)
class Subscriber:
    uid: str


@dataclass(frozen=True)
class Subscription:
    """Persisted subscription owned by one subscriber."""

    id: int
    uid: str
    name: Optional[str]
    kind: str
    config: Any


@dataclass(frozen=True)
class SubscribedMessage:
    """Persisted notification for a message that matched a subscription."""

    id: int
    subscriber: str
    kind: str
    sender: str
    guild: str
    content: str
    timestamp: int
    has_read: bool = False


@dataclass(frozen=True)
class MessageFilter:
    """Combined criteria for notification queries.

    ``kind`` and ``guild`` are optional restrictions; ``include_read`` widens
    the query from unread notifications to all of them.
    """

    subscriber: str
    kind: Optional[str] = None
    guild: Optional[str] = None
    include_read: bool = False
