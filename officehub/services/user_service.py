"""
officehub.services.user_service — User Records & Admin Flag
============================================================

Users are created on their first successful Discord login and refreshed on
every later one.  ``is_admin`` is a cached copy of "holds the configured
admin role"; protected endpoints re-check it against the guild when the
cached value is false.
"""

from __future__ import annotations

import logging
from typing import Any

from officehub.database.engine import run_db
from officehub.database.models import User
from officehub.database.store import PersistenceStore
from officehub.services.exceptions import GatewayError, UserNotFoundError
from officehub.services.guild_service import DiscordGuildClient

logger = logging.getLogger(__name__)


def upsert_discord_user(
    store: PersistenceStore, discord_user: dict[str, Any], *, is_admin: bool
) -> User:
    """Create or refresh the local record for a Discord ``/users/@me`` payload."""
    user_id = str(discord_user["id"])
    profile = {
        "username": discord_user.get("username", "Unknown"),
        "discriminator": discord_user.get("discriminator") or "0",
        "avatar": discord_user.get("avatar"),
        "is_admin": is_admin,
    }
    if store.get_user(user_id) is None:
        logger.info("New user %s (%s)", user_id, profile["username"])
        return store.create_user(id=user_id, **profile)
    return store.update_user(user_id, **profile)


async def refresh_admin_flag(
    store: PersistenceStore,
    guild: DiscordGuildClient,
    user: User,
    admin_role_id: str,
) -> User:
    """Re-derive ``is_admin`` from guild roles when the cached flag is false.

    A failed role lookup is logged and leaves the user as non-admin.
    """
    if user.is_admin:
        return user
    try:
        has_role = await guild.has_role(user.id, admin_role_id)
    except GatewayError as exc:
        logger.warning("Admin role check failed for %s: %s", user.id, exc)
        return user
    if has_role:
        logger.info("User %s gained the admin role", user.id)
        return await run_db(store.update_user, user.id, is_admin=True)
    return user


async def resolve_user_reference(
    store: PersistenceStore, guild: DiscordGuildClient, reference: str
) -> str:
    """Turn ``username#discriminator`` or a snowflake into a stored user id.

    Tagged references are looked up in the guild; a local record is created
    for the member if we have none yet.

    Raises
    ------
    UserNotFoundError
        If a tagged reference matches no guild member.
    """
    if "#" not in reference:
        return reference

    username, _, discriminator = reference.rpartition("#")
    member = await guild.find_member(username, discriminator)
    if member is None:
        raise UserNotFoundError(reference)

    user_id = str(member["id"])
    if await run_db(store.get_user, user_id) is None:
        await run_db(
            store.create_user,
            id=user_id,
            username=member.get("username", username),
            discriminator=member.get("discriminator", discriminator),
            avatar=member.get("avatar"),
            is_admin=False,
        )
    return user_id
