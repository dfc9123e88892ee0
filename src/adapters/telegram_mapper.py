"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Optional

from telethon import helpers
from telethon.tl.custom import Message
from telethon.tl.types import MessageEntityMentionName

from core.models import Caller, ChatEvent
from core.render import mention_placeholder

PLATFORM = "telegram"


def qualify(raw_id) -> str:
    """Return a platform-qualified id, e.g. ``telegram:42``."""

    return f"{PLATFORM}:{raw_id}"


def _guild_id_from_message(message: Message) -> Optional[str]:
    # Only basic groups and supergroups count as guilds; channels and private
    # chats have no member list to fan out to.
    if not getattr(message, "is_group", False):
        return None
    chat_id = getattr(message, "chat_id", None)
    if chat_id is None:
        return None
    return str(chat_id)


def _content_with_mentions(message: Message) -> str:
    """Return the raw text with user mentions as ``<at id=".."/>`` placeholders.

    Telegram entity offsets count UTF-16 code units, hence the surrogate
    round trip.
    """

    text = getattr(message, "raw_text", None) or ""
    entities = [
        entity
        for entity in (getattr(message, "entities", None) or [])
        if isinstance(entity, MessageEntityMentionName)
    ]
    if not entities:
        return text

    surrogated = helpers.add_surrogate(text)
    parts: list[str] = []
    cursor = 0
    for entity in sorted(entities, key=lambda item: item.offset):
        if entity.offset < cursor:
            continue
        parts.append(surrogated[cursor : entity.offset])
        parts.append(mention_placeholder(str(entity.user_id)))
        cursor = entity.offset + entity.length
    parts.append(surrogated[cursor:])
    return helpers.del_surrogate("".join(parts))


def _timestamp_ms(message: Message) -> int:
    date = getattr(message, "date", None)
    if date is None:
        return 0
    return int(date.timestamp() * 1000)


def build_event(message: Message) -> ChatEvent:
    """Build a core ChatEvent from a Telethon Message."""

    guild_id = _guild_id_from_message(message)
    return ChatEvent(
        platform=PLATFORM,
        sender_uid=qualify(message.sender_id),
        guild_id=guild_id,
        gid=qualify(guild_id) if guild_id is not None else None,
        content=_content_with_mentions(message),
        timestamp=_timestamp_ms(message),
    )


def build_caller(message: Message) -> Caller:
    """Build the command caller for a Telethon Message."""

    guild_id = _guild_id_from_message(message)
    return Caller(
        uid=qualify(message.sender_id),
        platform=PLATFORM,
        guild_id=guild_id,
        gid=qualify(guild_id) if guild_id is not None else None,
    )
