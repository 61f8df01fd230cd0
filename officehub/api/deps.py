"""
officehub.api.deps — FastAPI dependency injection
==================================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from officehub.config import OfficeHubConfig, load_config
from officehub.database.engine import create_db_engine, run_db
from officehub.database.models import User
from officehub.database.store import MemoryStore, PersistenceStore, SqlStore
from officehub.services.guild_service import DiscordGuildClient
from officehub.services.office_service import OfficeDirectory
from officehub.services.user_service import refresh_admin_flag
from officehub.services.voice_gateway import DiscordVoiceGateway, VoiceChannelGateway

_WEAK_SECRETS = frozenset({
    "officehub-dev-secret-change-me",
    "discord-office-panel-secret",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_config() -> OfficeHubConfig:
    return load_config(os.getenv("OFFICEHUB_CONFIG", "config.yaml"))


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_store() -> PersistenceStore:
    """``OFFICEHUB_STORE=memory`` selects the non-durable backend."""
    if os.getenv("OFFICEHUB_STORE", "sql").strip().lower() == "memory":
        return MemoryStore()
    return SqlStore(get_engine())


def _bot_token() -> str:
    token = os.getenv("DISCORD_BOT_TOKEN", "").strip()
    if not token:
        raise RuntimeError(
            "DISCORD_BOT_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
    return token


@lru_cache(maxsize=1)
def get_voice_gateway() -> VoiceChannelGateway:
    return DiscordVoiceGateway(_bot_token(), get_config().guild_id)


@lru_cache(maxsize=1)
def get_guild_client() -> DiscordGuildClient:
    return DiscordGuildClient(_bot_token(), get_config().guild_id)


def get_directory(
    store: Annotated[PersistenceStore, Depends(get_store)],
    gateway: Annotated[VoiceChannelGateway, Depends(get_voice_gateway)],
    cfg: Annotated[OfficeHubConfig, Depends(get_config)],
) -> OfficeDirectory:
    return OfficeDirectory.from_config(store, gateway, cfg)


def decode_token(authorization: str | None) -> dict:
    """Validate a ``Bearer`` JWT and return its payload.  Raises 401."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    store: PersistenceStore = Depends(get_store),
) -> User:
    """Resolve the JWT subject to its stored user.  Raises 401."""
    payload = decode_token(authorization)
    user_id = str(payload.get("sub", ""))
    user = await run_db(store.get_user, user_id) if user_id else None
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User not found")
    return user


async def get_acting_user(
    user: User = Depends(get_current_user),
    store: PersistenceStore = Depends(get_store),
    guild: DiscordGuildClient = Depends(get_guild_client),
    cfg: OfficeHubConfig = Depends(get_config),
) -> User:
    """The current user with ``is_admin`` re-checked against guild roles."""
    return await refresh_admin_flag(store, guild, user, cfg.admin_role_id)
