"""
officehub.services.discord_rest — Minimal Discord REST Client
==============================================================

Bot-token authenticated access to the handful of Discord endpoints OfficeHub
needs.  Each call opens a short-lived ``httpx.AsyncClient`` with an explicit
timeout; non-2xx answers and transport errors surface as
:class:`~officehub.services.exceptions.GatewayError`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from officehub.services.exceptions import GatewayError

logger = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"
DEFAULT_TIMEOUT = 10.0


class DiscordRestClient:
    """Shared plumbing for the guild and voice channel clients.

    Parameters
    ----------
    bot_token:
        The bot's token, sent as ``Authorization: Bot <token>``.
    guild_id:
        Snowflake of the guild everything is scoped to.
    transport:
        Optional ``httpx`` transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        bot_token: str,
        guild_id: str,
        *,
        api_base: str = DISCORD_API,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.guild_id = guild_id
        self._headers = {"Authorization": f"Bot {bot_token}"}
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(retries=1)
        return httpx.AsyncClient(
            base_url=self._api_base,
            headers=self._headers,
            timeout=self._timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        allow_404: bool = False,
    ) -> Any:
        """Send one request and return the decoded JSON body (or ``None``).

        With *allow_404*, a 404 answer returns ``None`` instead of raising.
        """
        try:
            async with self._client() as client:
                resp = await client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            raise GatewayError(f"Discord {method} {path} failed: {exc}") from exc

        if allow_404 and resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise GatewayError(
                f"Discord {method} {path} returned {resp.status_code}: "
                f"{resp.reason_phrase}"
            )
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise GatewayError(f"Discord {method} {path} returned invalid JSON") from exc
