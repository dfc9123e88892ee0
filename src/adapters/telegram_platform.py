"""Telethon implementation of the core PlatformPort."""

from __future__ import annotations

import logging
from typing import Optional

from core.models import Member

LOGGER = logging.getLogger(__name__)


def _display_name(user) -> Optional[str]:
    first = getattr(user, "first_name", None)
    last = getattr(user, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    return None


class TelethonPlatform:
    """Chat-platform adapter backed by a connected Telethon client."""

    def __init__(self, client) -> None:
        self._client = client

    async def get_guild_member_list(self, guild_id: str) -> list[Member]:
        """Return the current members of a group chat."""

        participants = await self._client.get_participants(int(guild_id))
        members = [
            Member(
                user_id=str(user.id),
                name=getattr(user, "username", None),
                nick=_display_name(user),
            )
            for user in participants
        ]
        LOGGER.debug("Fetched %s member(s) for guild %s", len(members), guild_id)
        return members
