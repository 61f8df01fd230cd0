"""
officehub.api.routes.users — Guild member search for the invite dialog
======================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from officehub.api.deps import get_current_user, get_guild_client
from officehub.database.models import User
from officehub.services.exceptions import GatewayError
from officehub.services.guild_service import DiscordGuildClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])

MIN_QUERY_LENGTH = 2


@router.get("/search")
async def search_users(
    q: str = Query(default=""),
    user: User = Depends(get_current_user),
    guild: DiscordGuildClient = Depends(get_guild_client),
):
    """Guild members whose username or nickname contains *q*."""
    if len(q) < MIN_QUERY_LENGTH:
        raise HTTPException(400, "Search query must be at least 2 characters")
    try:
        return await guild.search_members(q)
    except GatewayError as exc:
        logger.error("User search failed: %s", exc)
        raise HTTPException(500, "Failed to search for users")
