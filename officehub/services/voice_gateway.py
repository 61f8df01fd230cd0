"""
officehub.services.voice_gateway — Voice Channel Gateway
=========================================================

The boundary between office bookkeeping and Discord's voice channels.
:class:`VoiceChannelGateway` is the contract the office service depends on;
:class:`DiscordVoiceGateway` implements it over the Discord REST API.

Permission model:
    * At creation the guild's ``@everyone`` role (its id equals the guild id)
      is denied CONNECT and SPEAK, so only explicitly granted members can use
      the channel.
    * Granting a member: ``allow=CONNECT|SPEAK, deny=0``.
    * Revoking a member: ``allow=0, deny=CONNECT|SPEAK``.  An explicit deny,
      so the member cannot fall back on a role that would let them in.

Every method may raise :class:`~officehub.services.exceptions.GatewayError`.
"""

from __future__ import annotations

import logging
from typing import Protocol

from officehub.constants import (
    CHANNEL_TYPE_VOICE,
    NO_PERMISSIONS,
    OVERWRITE_TYPE_MEMBER,
    OVERWRITE_TYPE_ROLE,
    VOICE_ACCESS,
)
from officehub.services.discord_rest import DiscordRestClient
from officehub.services.exceptions import GatewayError

logger = logging.getLogger(__name__)


class VoiceChannelGateway(Protocol):
    """Voice channel CRUD plus per-member permission overwrites."""

    async def create_channel(self, label: str, category_id: str | None = None) -> str: ...

    async def delete_channel(self, channel_id: str) -> None: ...

    async def rename_channel(self, channel_id: str, new_label: str) -> None: ...

    async def set_member_permission(
        self, channel_id: str, user_id: str, allow: int, deny: int
    ) -> None: ...


class DiscordVoiceGateway(DiscordRestClient):
    """:class:`VoiceChannelGateway` backed by the Discord REST API."""

    async def create_channel(self, label: str, category_id: str | None = None) -> str:
        payload: dict = {
            "name": label,
            "type": CHANNEL_TYPE_VOICE,
            "permission_overwrites": [
                {
                    "id": self.guild_id,  # @everyone
                    "type": OVERWRITE_TYPE_ROLE,
                    "allow": str(NO_PERMISSIONS),
                    "deny": str(VOICE_ACCESS),
                }
            ],
        }
        if category_id:
            payload["parent_id"] = category_id

        channel = await self._request(
            "POST", f"/guilds/{self.guild_id}/channels", json=payload
        )
        if not channel or "id" not in channel:
            raise GatewayError("Discord channel create returned no channel id")
        logger.info("Created voice channel %r → %s", label, channel["id"])
        return str(channel["id"])

    async def delete_channel(self, channel_id: str) -> None:
        await self._request("DELETE", f"/channels/{channel_id}")
        logger.info("Deleted voice channel %s", channel_id)

    async def rename_channel(self, channel_id: str, new_label: str) -> None:
        await self._request("PATCH", f"/channels/{channel_id}", json={"name": new_label})
        logger.info("Renamed voice channel %s → %r", channel_id, new_label)

    async def set_member_permission(
        self, channel_id: str, user_id: str, allow: int, deny: int
    ) -> None:
        await self._request(
            "PUT",
            f"/channels/{channel_id}/permissions/{user_id}",
            json={
                "allow": str(allow),
                "deny": str(deny),
                "type": OVERWRITE_TYPE_MEMBER,
            },
        )
        logger.debug(
            "Set overwrite on %s for %s (allow=%d deny=%d)",
            channel_id, user_id, allow, deny,
        )
