"""Notification queries and read/clear transitions."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from core.models import MessageFilter, SubscribedMessage
from core.ports import MessageStorePort
from core.registry import RuleRegistry
from core.render import RenderContext

LOGGER = logging.getLogger(__name__)


class CheckAction(enum.Enum):
    NONE = "none"
    MARK_READ = "mark_read"
    CLEAR = "clear"


@dataclass(frozen=True)
class CheckResult:
    """Snapshot listed by ``check`` and what was done to it."""

    messages: list[SubscribedMessage]
    rendered: list[str]
    action: CheckAction
    affected: int = 0
    kind: Optional[str] = None

    @property
    def removed_count(self) -> int:
        return self.affected if self.action is CheckAction.CLEAR else 0


class MessageQueryEngine:
    """Reads a subscriber's notifications and applies bulk state changes.

    Mutations always target an explicit id set, normally the ids returned by
    the preceding query, so a newer notification matching the same criteria
    is never marked or cleared by accident.
    """

    def __init__(self, registry: RuleRegistry, store: MessageStorePort) -> None:
        self._registry = registry
        self._store = store

    def query(
        self,
        uid: str,
        kind: Optional[str] = None,
        guild: Optional[str] = None,
        include_read: bool = False,
    ) -> list[SubscribedMessage]:
        """``guild=None`` means all guilds."""

        return self._store.query_messages(
            MessageFilter(subscriber=uid, kind=kind, guild=guild, include_read=include_read)
        )

    def mark_read(self, ids: Iterable[int]) -> int:
        return self._store.mark_read(list(ids))

    def clear(self, ids: Iterable[int]) -> int:
        removed = self._store.remove_messages(list(ids))
        LOGGER.info("Cleared %s notification(s)", removed)
        return removed

    async def render(self, context: RenderContext, message: SubscribedMessage) -> str:
        """Render one notification, falling back to raw content for orphans."""

        rule = self._registry.lookup(message.kind)
        if rule is None:
            return message.content
        text = rule.render(context, message)
        if inspect.isawaitable(text):
            text = await text
        return text

    async def check(
        self,
        context: RenderContext,
        kind: Optional[str] = None,
        all_guilds: bool = False,
        include_read: bool = False,
        action: CheckAction = CheckAction.MARK_READ,
    ) -> CheckResult:
        """List, render and then mark-read or clear the caller's notifications.

        Clearing also covers read notifications. A call issued inside a guild
        is scoped to that guild unless ``all_guilds`` is set. Rendering
        happens before the mutation so a failing renderer loses nothing.
        """

        caller = context.caller
        guild = caller.gid if caller.gid and not all_guilds else None
        messages = self.query(
            caller.uid,
            kind=kind,
            guild=guild,
            include_read=include_read or action is CheckAction.CLEAR,
        )
        if not messages:
            return CheckResult(messages=[], rendered=[], action=action, kind=kind)

        rendered = list(await asyncio.gather(*(self.render(context, message) for message in messages)))
        ids = [message.id for message in messages]
        affected = 0
        if action is CheckAction.CLEAR:
            affected = self.clear(ids)
        elif action is CheckAction.MARK_READ:
            affected = self.mark_read(ids)

        return CheckResult(
            messages=messages,
            rendered=rendered,
            action=action,
            affected=affected,
            kind=kind,
        )
