"""Rendering helpers shared by rule modules."""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.models import Caller, SubscribedMessage
from core.ports import PlatformPort

MENTION_PATTERN = re.compile(r'<at id="([^"]+)"/>')


@dataclass(frozen=True)
class RenderContext:
    """What a renderer may use: the caller and the chat platform."""

    caller: Caller
    platform: PlatformPort


def mention_placeholder(user_id: str) -> str:
    return f'<at id="{user_id}"/>'


async def escape_mentions(context: RenderContext, message: SubscribedMessage) -> str:
    """Replace mention placeholders with readable ``@name`` text.

    The member list of the notification's guild is only fetched when the
    content actually contains a mention.
    """

    if not MENTION_PATTERN.search(message.content):
        return message.content

    _, _, guild_id = message.guild.partition(":")
    members = await context.platform.get_guild_member_list(guild_id) if guild_id else []
    by_id = {member.user_id: member for member in members}

    def replace(match: re.Match) -> str:
        user_id = match.group(1)
        member = by_id.get(user_id)
        label = (member.nick or member.name) if member else None
        return f"@{label or user_id}"

    return MENTION_PATTERN.sub(replace, message.content)
