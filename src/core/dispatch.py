"""Message fan-out: inbound group message -> pending notifications.

This module is integration-agnostic. It only relies on ports for storage and
the chat platform, enabling other frontends or adapters without changes here.
"""

from __future__ import annotations

import asyncio
import logging

from core.config import ORDERING_DETACHED, DispatchConfig
from core.models import ChatEvent, Subscriber, Subscription
from core.ports import MessageStorePort, PlatformPort, SubscriptionStorePort
from core.registry import RuleRegistry

LOGGER = logging.getLogger(__name__)


class DispatchEngine:
    """Evaluates every relevant subscription against each inbound message."""

    def __init__(
        self,
        registry: RuleRegistry,
        subscriptions: SubscriptionStorePort,
        messages: MessageStorePort,
        platform: PlatformPort,
        config: DispatchConfig,
    ) -> None:
        self._registry = registry
        self._subscriptions = subscriptions
        self._messages = messages
        self._platform = platform
        self._config = config
        self._pending: set[asyncio.Task] = set()

    async def handle(self, event: ChatEvent) -> None:
        """Fan one message out; returns once notifications exist (sync ordering)."""

        if not self._config.enabled:
            return

        # Only group messages are eligible.
        if event.guild_id is None:
            return

        if self._config.ordering == ORDERING_DETACHED:
            task = asyncio.create_task(self.dispatch(event))
            self._pending.add(task)
            task.add_done_callback(self._on_detached_done)
            return

        await self.dispatch(event)

    async def dispatch(self, event: ChatEvent) -> int:
        """Run the fan-out and return the number of notifications created."""

        # Member enumeration bounds the subscription query to people who can
        # actually see this message.
        members = await self._platform.get_guild_member_list(event.guild_id)
        member_uids = {f"{event.platform}:{member.user_id}" for member in members}
        if not member_uids:
            return 0

        subscriptions = self._subscriptions.list_subscriptions_for_uids(member_uids)
        results = await asyncio.gather(*(self._evaluate(event, subscription) for subscription in subscriptions))
        created = sum(1 for result in results if result)
        if created:
            LOGGER.info("Dispatched %s notification(s) for message in %s", created, event.gid)
        return created

    @property
    def in_flight(self) -> int:
        """Number of detached fan-outs that have not finished yet."""

        return len(self._pending)

    async def drain(self) -> None:
        """Wait for detached fan-outs still in flight."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _evaluate(self, event: ChatEvent, subscription: Subscription) -> bool:
        rule = self._registry.lookup(subscription.kind)
        if rule is None:
            # Orphaned subscriptions are inert until their rule comes back.
            LOGGER.debug("Skipping subscription #%s: rule [%s] is not registered", subscription.id, subscription.kind)
            return False

        subscriber = Subscriber(uid=subscription.uid)
        if not rule.filter(event, subscription.config, subscriber):
            return False

        self._messages.create_message(
            subscriber=subscriber.uid,
            kind=subscription.kind,
            sender=event.sender_uid,
            guild=event.gid or "",
            content=event.content,
            timestamp=event.timestamp,
        )
        return True

    def _on_detached_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Detached dispatch failed", exc_info=error)
