"""
officehub.services.office_service — Office & Membership Orchestration
======================================================================

:class:`OfficeDirectory` owns the office and membership lifecycle.  It
writes through a :class:`~officehub.database.store.PersistenceStore` and
mirrors every change into Discord through a
:class:`~officehub.services.voice_gateway.VoiceChannelGateway`.

The store is the source of truth.  Each gateway call is attempted once and any
exception it raises is logged and dropped, so a Discord outage never
blocks or rolls back a persisted change.  Channel state may drift from
the store and is not reconciled here.

Multi-step operations are not atomic.  A crash between steps can leave an
office without its owner membership, or a membership whose channel
overwrite was never written.

Known races (requests on the same office are not serialised):
    * Two concurrent joins of the same user: the store's uniqueness check
      on ``(office_id, user_id)`` lets one win; the other raises
      :class:`AlreadyMemberError`.
    * An office deleted between ``join_office``'s existence check and the
      membership insert: the insert raises :class:`OfficeNotFoundError` on
      both backends and no membership is written.
"""

from __future__ import annotations

import logging
from typing import Any

from officehub.config import DEFAULT_CHANNEL_PREFIX, OfficeHubConfig
from officehub.constants import NO_PERMISSIONS, VOICE_ACCESS
from officehub.database.engine import run_db
from officehub.database.models import Office, OfficeMember, OfficeStatus
from officehub.database.store import PersistenceStore
from officehub.services import access_policy
from officehub.services.exceptions import (
    AlreadyMemberError,
    CannotRemoveOwnerError,
    ForbiddenError,
    MembershipNotFoundError,
    OfficeLimitError,
    OfficeNotFoundError,
    UserNotFoundError,
)
from officehub.services.views import OfficeView, build_office_view
from officehub.services.voice_gateway import VoiceChannelGateway

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "is_private", "status")


class OfficeDirectory:
    """Office lifecycle, membership lifecycle and enriched reads.

    Parameters
    ----------
    store:
        Persistence backend.
    gateway:
        Voice channel gateway.  Failures are logged, never raised.
    category_id:
        Discord category new office channels are created under.
    channel_prefix:
        Prepended to the office name to form the voice channel name.
    """

    def __init__(
        self,
        store: PersistenceStore,
        gateway: VoiceChannelGateway,
        *,
        category_id: str | None = None,
        channel_prefix: str = DEFAULT_CHANNEL_PREFIX,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.category_id = category_id
        self.channel_prefix = channel_prefix

    @classmethod
    def from_config(
        cls, store: PersistenceStore, gateway: VoiceChannelGateway, cfg: OfficeHubConfig
    ) -> OfficeDirectory:
        return cls(
            store,
            gateway,
            category_id=cfg.voice_category_id,
            channel_prefix=cfg.office_channel_prefix,
        )

    def _label(self, name: str) -> str:
        return f"{self.channel_prefix}{name}"

    # -----------------------------------------------------------------------
    # Office lifecycle
    # -----------------------------------------------------------------------
    async def create_office(
        self,
        owner_id: str,
        name: str,
        description: str | None = None,
        is_private: bool = True,
    ) -> OfficeView:
        """Create an office, its voice channel and the owner's membership.

        Raises
        ------
        UserNotFoundError
            If *owner_id* has no user record.
        OfficeLimitError
            If *owner_id* already owns an office.
        """
        if await run_db(self.store.get_user, owner_id) is None:
            raise UserNotFoundError(owner_id)
        if await run_db(self.store.user_owns_any_office, owner_id):
            raise OfficeLimitError(owner_id)

        office = await run_db(
            self.store.insert_office,
            name=name,
            owner_id=owner_id,
            description=description,
            is_private=is_private,
        )
        logger.info("Office %d %r created for owner %s", office.id, name, owner_id)

        try:
            channel_id = await self.gateway.create_channel(
                self._label(name), self.category_id
            )
        except Exception as exc:
            logger.warning(
                "Voice channel creation failed for office %d, continuing without one: %s",
                office.id, exc,
            )
        else:
            await run_db(self.store.update_office, office.id, voice_channel_id=channel_id)

        await self.add_member(office.id, owner_id, is_owner=True)
        return await self._require_view(office.id)

    async def update_office(self, office_id: int, **fields: Any) -> OfficeView:
        """Apply ``name``, ``description``, ``is_private`` and ``status``.

        Other keys are ignored.  A name change renames the voice channel.

        Raises
        ------
        OfficeNotFoundError
        ValueError
            If ``status`` is not an :class:`OfficeStatus` value.
        """
        office = await self._require_office(office_id)
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if "status" in changes:
            changes["status"] = OfficeStatus(changes["status"]).value

        updated = await run_db(self.store.update_office, office_id, **changes)

        if updated.name != office.name and updated.voice_channel_id:
            try:
                await self.gateway.rename_channel(
                    updated.voice_channel_id, self._label(updated.name)
                )
            except Exception as exc:
                logger.warning(
                    "Voice channel rename failed for office %d: %s", office_id, exc
                )

        return await self._require_view(office_id)

    async def delete_office(self, office_id: int) -> None:
        """Remove every membership, then the voice channel, then the office.

        Member overwrites are revoked while the channel still exists.
        """
        office = await self._require_office(office_id)

        for membership in await run_db(self.store.list_memberships, office_id):
            await self._drop_membership(office, membership.user_id)

        if office.voice_channel_id:
            try:
                await self.gateway.delete_channel(office.voice_channel_id)
            except Exception as exc:
                logger.warning(
                    "Voice channel delete failed for office %d (channel %s): %s",
                    office_id, office.voice_channel_id, exc,
                )

        await run_db(self.store.delete_office, office_id)
        logger.info("Office %d %r deleted", office_id, office.name)

    # -----------------------------------------------------------------------
    # Membership lifecycle
    # -----------------------------------------------------------------------
    async def add_member(
        self, office_id: int, user_id: str, is_owner: bool = False
    ) -> OfficeMember:
        """Insert a membership and grant voice access.

        Does not check for an existing membership first; the store raises
        :class:`AlreadyMemberError` on a duplicate.
        """
        membership = await run_db(
            self.store.insert_membership,
            office_id=office_id,
            user_id=user_id,
            is_owner=is_owner,
        )
        office = await run_db(self.store.get_office, office_id)
        if office is not None and office.voice_channel_id:
            try:
                await self.gateway.set_member_permission(
                    office.voice_channel_id, user_id, VOICE_ACCESS, NO_PERMISSIONS
                )
            except Exception as exc:
                logger.warning(
                    "Granting voice access to %s in office %d failed: %s",
                    user_id, office_id, exc,
                )
            else:
                logger.info("Granted voice access to %s in office %d", user_id, office_id)
        return membership

    async def remove_member(self, office_id: int, user_id: str) -> None:
        """Revoke voice access and delete the membership.

        Raises
        ------
        OfficeNotFoundError
        CannotRemoveOwnerError
            For the office owner, regardless of who asks.
        MembershipNotFoundError
        """
        office = await self._require_office(office_id)
        if user_id == office.owner_id:
            raise CannotRemoveOwnerError(office_id)
        if not await self.is_member(office_id, user_id):
            raise MembershipNotFoundError(office_id, user_id)
        await self._drop_membership(office, user_id)

    async def _drop_membership(self, office: Office, user_id: str) -> None:
        if office.voice_channel_id:
            try:
                await self.gateway.set_member_permission(
                    office.voice_channel_id, user_id, NO_PERMISSIONS, VOICE_ACCESS
                )
            except Exception as exc:
                logger.warning(
                    "Revoking voice access from %s in office %d failed: %s",
                    user_id, office.id, exc,
                )
            else:
                logger.info("Revoked voice access from %s in office %d", user_id, office.id)
        await run_db(self.store.delete_membership, office.id, user_id)

    async def is_member(self, office_id: int, user_id: str) -> bool:
        return await run_db(self.store.get_membership, office_id, user_id) is not None

    async def join_office(self, office_id: int, user_id: str) -> OfficeMember:
        """Self-service join.  Private offices need an invitation.

        Raises
        ------
        OfficeNotFoundError
        ForbiddenError
            If the office is private and *user_id* is not a member.
        AlreadyMemberError
        """
        office = await self._require_office(office_id)
        already = await self.is_member(office_id, user_id)
        if not access_policy.can_join(office, user_id, already):
            raise ForbiddenError("Cannot join a private office without an invitation")
        if already:
            raise AlreadyMemberError(office_id, user_id)
        return await self.add_member(office_id, user_id, is_owner=False)

    async def invite_member(self, office_id: int, user_id: str) -> OfficeMember:
        """Add *user_id* on behalf of the owner or an admin.

        The caller is responsible for the manage-office permission check.
        """
        await self._require_office(office_id)
        if await run_db(self.store.get_user, user_id) is None:
            raise UserNotFoundError(user_id)
        if await self.is_member(office_id, user_id):
            raise AlreadyMemberError(office_id, user_id)
        return await self.add_member(office_id, user_id, is_owner=False)

    # -----------------------------------------------------------------------
    # Enriched reads
    # -----------------------------------------------------------------------
    def _assemble_view(self, office: Office) -> OfficeView:
        """Sync: fetch members and users for *office* and build its view."""
        memberships = self.store.list_memberships(office.id)
        user_ids = {office.owner_id, *(m.user_id for m in memberships)}
        users = {uid: self.store.get_user(uid) for uid in user_ids}
        return build_office_view(office, memberships, users)

    def _assemble_views(self, offices: list[Office]) -> list[OfficeView]:
        return [self._assemble_view(o) for o in offices]

    async def get_enriched_office(self, office_id: int) -> OfficeView | None:
        office = await run_db(self.store.get_office, office_id)
        if office is None:
            return None
        return await run_db(self._assemble_view, office)

    async def list_enriched_offices(self) -> list[OfficeView]:
        offices = await run_db(self.store.list_offices)
        return await run_db(self._assemble_views, offices)

    async def get_user_office(self, user_id: str) -> OfficeView | None:
        """The office *user_id* owns, else the first office they belong to."""
        owned = await run_db(self.store.list_offices_by_owner, user_id)
        if owned:
            return await run_db(self._assemble_view, owned[0])

        for membership in await run_db(self.store.list_memberships_by_user, user_id):
            view = await self.get_enriched_office(membership.office_id)
            if view is not None:
                return view
        return None

    async def list_available_offices(self, user_id: str) -> list[OfficeView]:
        """Public offices plus private ones *user_id* already belongs to."""
        offices = await run_db(self.store.list_offices)
        memberships = await run_db(self.store.list_memberships_by_user, user_id)
        member_of = {m.office_id for m in memberships}
        visible = [
            o for o in offices
            if access_policy.can_join(o, user_id, o.id in member_of)
        ]
        return await run_db(self._assemble_views, visible)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------
    async def _require_office(self, office_id: int) -> Office:
        office = await run_db(self.store.get_office, office_id)
        if office is None:
            raise OfficeNotFoundError(office_id)
        return office

    async def _require_view(self, office_id: int) -> OfficeView:
        view = await self.get_enriched_office(office_id)
        if view is None:
            raise OfficeNotFoundError(office_id)
        return view
