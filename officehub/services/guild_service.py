"""
officehub.services.guild_service — Guild Member & Role Lookups
===============================================================

Answers "who is in the guild" and "does this member hold a role" with the
bot token.  Used to derive ``User.is_admin``, to resolve
``username#discriminator`` owner references and for the invite search box.
"""

from __future__ import annotations

import logging
from typing import Any

from officehub.services.discord_rest import DiscordRestClient

logger = logging.getLogger(__name__)

MEMBER_PAGE_LIMIT = 1000


class DiscordGuildClient(DiscordRestClient):
    """Read-only guild queries."""

    async def fetch_member(self, user_id: str) -> dict[str, Any] | None:
        """Return the guild member object, or ``None`` if not in the guild."""
        return await self._request(
            "GET", f"/guilds/{self.guild_id}/members/{user_id}", allow_404=True
        )

    async def has_role(self, user_id: str, role_id: str) -> bool:
        member = await self.fetch_member(user_id)
        if member is None:
            return False
        return str(role_id) in {str(r) for r in member.get("roles", [])}

    async def list_members(self, limit: int = MEMBER_PAGE_LIMIT) -> list[dict[str, Any]]:
        members = await self._request(
            "GET", f"/guilds/{self.guild_id}/members", params={"limit": limit}
        )
        return members or []

    async def search_members(self, query: str) -> list[dict[str, Any]]:
        """Users whose username or guild nickname contains *query*.

        Matching is case-insensitive.  Returns plain user dicts
        (``id``, ``username``, ``discriminator``, ``avatar``).
        """
        needle = query.lower()
        results: list[dict[str, Any]] = []
        for member in await self.list_members():
            user = member.get("user")
            if not user:
                continue
            nick = member.get("nick") or ""
            if needle in user.get("username", "").lower() or needle in nick.lower():
                results.append({
                    "id": str(user["id"]),
                    "username": user.get("username", ""),
                    "discriminator": user.get("discriminator", "0"),
                    "avatar": user.get("avatar"),
                })
        return results

    async def find_member(self, username: str, discriminator: str) -> dict[str, Any] | None:
        """Resolve a ``username#discriminator`` reference to a user dict."""
        for member in await self.list_members():
            user = member.get("user")
            if (
                user
                and user.get("username") == username
                and user.get("discriminator") == discriminator
            ):
                return user
        return None
