"""
officehub.api.routes.offices — Office & membership endpoints
=============================================================

Thin mapping onto :class:`OfficeDirectory` and the access policy.  Domain
exceptions are turned into status codes by the handlers in
:mod:`officehub.api.main`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from officehub.api.deps import (
    get_acting_user,
    get_current_user,
    get_directory,
    get_guild_client,
    get_store,
)
from officehub.database.models import OfficeStatus, User
from officehub.database.store import PersistenceStore
from officehub.services import access_policy
from officehub.services.exceptions import ForbiddenError, OfficeNotFoundError
from officehub.services.guild_service import DiscordGuildClient
from officehub.services.office_service import OfficeDirectory
from officehub.services.user_service import resolve_user_reference
from officehub.services.views import OfficeView

router = APIRouter(prefix="/offices", tags=["offices"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class OfficeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    is_private: bool = True
    owner_id: str = Field(min_length=1)  # snowflake or username#discriminator


class OfficeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    is_private: bool | None = None
    status: OfficeStatus | None = None


class InviteBody(BaseModel):
    user_id: str = Field(min_length=1)


async def _load_office(directory: OfficeDirectory, office_id: int) -> OfficeView:
    view = await directory.get_enriched_office(office_id)
    if view is None:
        raise OfficeNotFoundError(office_id)
    return view


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------
@router.get("")
async def list_offices(
    user: User = Depends(get_acting_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    """All offices (admin only)."""
    access_policy.require_admin(user)
    return [v.to_dict() for v in await directory.list_enriched_offices()]


@router.post("", status_code=201)
async def create_office(
    body: OfficeCreate,
    user: User = Depends(get_acting_user),
    directory: OfficeDirectory = Depends(get_directory),
    store: PersistenceStore = Depends(get_store),
    guild: DiscordGuildClient = Depends(get_guild_client),
):
    """Create an office for *owner_id* (admin only)."""
    access_policy.require_admin(user)
    owner_id = await resolve_user_reference(store, guild, body.owner_id)
    view = await directory.create_office(
        owner_id, body.name, description=body.description, is_private=body.is_private
    )
    return view.to_dict()


@router.get("/me")
async def my_office(
    user: User = Depends(get_current_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    view = await directory.get_user_office(user.id)
    if view is None:
        raise HTTPException(404, "No office found")
    return view.to_dict()


@router.get("/available")
async def available_offices(
    user: User = Depends(get_current_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    """Public offices plus private ones the caller already belongs to."""
    return [v.to_dict() for v in await directory.list_available_offices(user.id)]


# ---------------------------------------------------------------------------
# Single office
# ---------------------------------------------------------------------------
@router.get("/{office_id}")
async def get_office(
    office_id: int,
    user: User = Depends(get_acting_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    view = await _load_office(directory, office_id)
    is_member = any(m.user_id == user.id for m in view.members)
    if not access_policy.can_view_office(user, view, is_member):
        raise ForbiddenError("This office is private")
    return view.to_dict()


@router.patch("/{office_id}")
async def update_office(
    office_id: int,
    body: OfficeUpdate,
    user: User = Depends(get_acting_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    """Edit an office (owner or admin)."""
    view = await _load_office(directory, office_id)
    access_policy.require_manage_office(user, view)
    changes = {
        k: v for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k == "description"
    }
    updated = await directory.update_office(office_id, **changes)
    return updated.to_dict()


@router.delete("/{office_id}", status_code=204)
async def delete_office(
    office_id: int,
    user: User = Depends(get_acting_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    """Delete an office, its memberships and its voice channel (owner or admin)."""
    view = await _load_office(directory, office_id)
    access_policy.require_manage_office(user, view)
    await directory.delete_office(office_id)
    return None


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------
@router.post("/{office_id}/join")
async def join_office(
    office_id: int,
    user: User = Depends(get_current_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    await directory.join_office(office_id, user.id)
    return {"message": "Successfully joined the office"}


@router.post("/{office_id}/invite")
async def invite_member(
    office_id: int,
    body: InviteBody,
    user: User = Depends(get_acting_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    """Add another user to the office (owner or admin)."""
    view = await _load_office(directory, office_id)
    access_policy.require_manage_office(user, view)
    await directory.invite_member(office_id, body.user_id)
    return {"message": "User invited to the office"}


@router.delete("/{office_id}/members/{member_id}", status_code=204)
async def remove_member(
    office_id: int,
    member_id: str,
    user: User = Depends(get_acting_user),
    directory: OfficeDirectory = Depends(get_directory),
):
    """Remove a member (owner or admin).  The owner cannot be removed."""
    view = await _load_office(directory, office_id)
    access_policy.require_manage_office(user, view)
    await directory.remove_member(office_id, member_id)
    return None
