"""
officehub.api.auth — Discord OAuth2 + JWT issuance
===================================================

Any guild member may sign in.  The admin flag is taken from the configured
admin role at login time and cached on the user record.

The OAuth ``state`` parameter is itself a short-lived JWT, so the login
flow needs no server-side storage and works with either store backend.
"""

from __future__ import annotations

import logging
import os
import secrets
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

import httpx
import jwt
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from jwt.exceptions import InvalidTokenError

from officehub.api.deps import (
    JWT_ALGORITHM,
    JWT_SECRET,
    get_acting_user,
    get_config,
    get_store,
)
from officehub.config import OfficeHubConfig
from officehub.database.engine import run_db
from officehub.database.models import User
from officehub.database.store import PersistenceStore
from officehub.services.discord_rest import DISCORD_API
from officehub.services.user_service import upsert_discord_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

OAUTH_SCOPE = "identify guilds guilds.members.read"
OAUTH_STATE_TTL_SECONDS = 600
SESSION_TTL = timedelta(days=7)


def _oauth_env() -> tuple[str, str, str, str]:
    """Return required OAuth env vars or raise a clear 500."""
    client_id = os.getenv("DISCORD_CLIENT_ID", "").strip()
    client_secret = os.getenv("DISCORD_CLIENT_SECRET", "").strip()
    redirect_uri = os.getenv("DISCORD_REDIRECT_URI", "").strip()
    frontend_url = os.getenv("FRONTEND_URL", "").strip()

    missing = []
    if not client_id:
        missing.append("DISCORD_CLIENT_ID")
    if not client_secret:
        missing.append("DISCORD_CLIENT_SECRET")
    if not redirect_uri:
        missing.append("DISCORD_REDIRECT_URI")
    if not frontend_url:
        missing.append("FRONTEND_URL")

    if missing:
        raise HTTPException(
            status_code=500,
            detail=(
                "Discord OAuth is not configured: missing "
                + ", ".join(missing)
            ),
        )

    return client_id, client_secret, redirect_uri, frontend_url


def _issue_oauth_state() -> str:
    return jwt.encode(
        {
            "purpose": "oauth_state",
            "nonce": secrets.token_urlsafe(16),
            "exp": datetime.now(UTC) + timedelta(seconds=OAUTH_STATE_TTL_SECONDS),
        },
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def _valid_oauth_state(state: str) -> bool:
    try:
        payload = jwt.decode(state, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        return False
    return payload.get("purpose") == "oauth_state"


def issue_session_token(user: User) -> str:
    payload = {
        "sub": user.id,
        "username": user.username,
        "avatar": user.avatar,
        "is_admin": bool(user.is_admin),
        "exp": datetime.now(UTC) + SESSION_TTL,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


@router.get("/login")
async def login():
    """Redirect to Discord OAuth2 consent screen."""
    client_id, _, redirect_uri, _ = _oauth_env()

    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": OAUTH_SCOPE,
            "state": _issue_oauth_state(),
            "prompt": "consent",
        }
    )
    return RedirectResponse(f"https://discord.com/oauth2/authorize?{query}")


@router.get("/callback")
async def callback(
    code: str,
    state: str,
    cfg: OfficeHubConfig = Depends(get_config),
    store: PersistenceStore = Depends(get_store),
):
    """Exchange OAuth code, upsert the user, redirect with a JWT."""
    client_id, client_secret, redirect_uri, frontend_url = _oauth_env()

    if not _valid_oauth_state(state):
        raise HTTPException(400, "Invalid or expired OAuth state")

    transport = httpx.AsyncHTTPTransport(retries=1)
    async with httpx.AsyncClient(timeout=10, transport=transport) as client:
        token_resp = await client.post(
            f"{DISCORD_API}/oauth2/token",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": client_id,
                "client_secret": client_secret,
                "scope": OAUTH_SCOPE,
            },
        )
        if token_resp.status_code != 200:
            logger.warning("OAuth token exchange failed: %s", token_resp.status_code)
            return RedirectResponse(f"{frontend_url}?auth_error=token_exchange")

        access_token = token_resp.json().get("access_token")
        if not access_token:
            raise HTTPException(400, "No access token returned")

        headers = {"Authorization": f"Bearer {access_token}"}
        user_resp = await client.get(f"{DISCORD_API}/users/@me", headers=headers)
        member_resp = await client.get(
            f"{DISCORD_API}/users/@me/guilds/{cfg.guild_id}/member",
            headers=headers,
        )

    if user_resp.status_code != 200:
        raise HTTPException(400, "Failed to fetch Discord user")

    if member_resp.status_code != 200:
        return RedirectResponse(f"{frontend_url}?auth_error=not_in_guild")

    role_ids = {str(r) for r in member_resp.json().get("roles", [])}
    is_admin = cfg.admin_role_id in role_ids

    user = await run_db(upsert_discord_user, store, user_resp.json(), is_admin=is_admin)
    logger.info("User %s signed in (admin=%s)", user.id, user.is_admin)

    return RedirectResponse(
        f"{frontend_url}/auth/callback?token={issue_session_token(user)}"
    )


@router.get("/me")
async def me(
    user: User = Depends(get_acting_user),
    store: PersistenceStore = Depends(get_store),
):
    """Return the current user's profile and whether they own an office."""
    has_office = await run_db(store.user_owns_any_office, user.id)
    return {
        "id": user.id,
        "username": user.username,
        "discriminator": user.discriminator,
        "avatar": user.avatar,
        "is_admin": bool(user.is_admin),
        "has_office": has_office,
    }
