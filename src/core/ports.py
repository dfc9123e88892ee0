"""Ports (interfaces) used by the core.

Ports define the minimal contracts for storage and chat-platform adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

from core.models import Member, MessageFilter, SubscribedMessage, Subscription


class SubscriptionStorePort(Protocol):
    """Subscription persistence required by the manager and dispatcher."""

    def create_subscription(self, uid: str, kind: str, config: Any, name: Optional[str]) -> Subscription:
        ...

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        ...

    def find_subscription(self, uid: str, name: str) -> Optional[Subscription]:
        ...

    def list_subscriptions(self, uid: str) -> list[Subscription]:
        ...

    def list_subscriptions_for_uids(self, uids: Iterable[str]) -> list[Subscription]:
        ...

    def update_subscription(self, subscription_id: int, changes: dict[str, Any]) -> None:
        ...

    def delete_subscription(self, subscription_id: int) -> int:
        ...


class MessageStorePort(Protocol):
    """Notification persistence required by the dispatcher and query engine."""

    def create_message(
        self,
        *,
        subscriber: str,
        kind: str,
        sender: str,
        guild: str,
        content: str,
        timestamp: int,
    ) -> SubscribedMessage:
        ...

    def query_messages(self, criteria: MessageFilter) -> list[SubscribedMessage]:
        ...

    def mark_read(self, ids: Iterable[int]) -> int:
        ...

    def remove_messages(self, ids: Iterable[int]) -> int:
        ...


class PlatformPort(Protocol):
    """Chat-platform operations required by the core."""

    async def get_guild_member_list(self, guild_id: str) -> list[Member]:
        ...
