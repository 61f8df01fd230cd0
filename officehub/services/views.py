"""
officehub.services.views — Enriched Office Views
=================================================

An :class:`OfficeView` is an office joined with its resolved owner, member
list and member count.  Views are rebuilt on every read and never cached.
A user reference with no stored record resolves to an "Unknown"
placeholder instead of being dropped, so ``member_count`` always equals the
number of membership rows.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime

from officehub.constants import UNKNOWN_DISCRIMINATOR, UNKNOWN_USERNAME
from officehub.database.models import Office, OfficeMember, User


@dataclass(frozen=True, slots=True)
class UserSummary:
    id: str
    username: str
    discriminator: str
    avatar: str | None = None
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: User) -> UserSummary:
        return cls(
            id=user.id,
            username=user.username,
            discriminator=user.discriminator,
            avatar=user.avatar,
            is_admin=bool(user.is_admin),
        )

    @classmethod
    def placeholder(cls, user_id: str) -> UserSummary:
        return cls(id=user_id, username=UNKNOWN_USERNAME, discriminator=UNKNOWN_DISCRIMINATOR)


@dataclass(frozen=True, slots=True)
class MemberView:
    office_id: int
    user_id: str
    is_owner: bool
    joined_at: datetime | None
    user: UserSummary


@dataclass(frozen=True, slots=True)
class OfficeView:
    id: int
    name: str
    description: str | None
    is_private: bool
    owner_id: str
    status: str
    voice_channel_id: str | None
    created_at: datetime | None
    owner: UserSummary
    members: list[MemberView] = field(default_factory=list)
    member_count: int = 0

    def to_dict(self) -> dict:
        """JSON-friendly representation (datetimes as ISO strings)."""
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        for member, source in zip(data["members"], self.members):
            member["joined_at"] = source.joined_at.isoformat() if source.joined_at else None
        return data


def resolve_user(users: dict[str, User | None], user_id: str) -> UserSummary:
    user = users.get(user_id)
    return UserSummary.from_user(user) if user else UserSummary.placeholder(user_id)


def build_office_view(
    office: Office,
    memberships: list[OfficeMember],
    users: dict[str, User | None],
) -> OfficeView:
    """Assemble a view from already-fetched records.

    *users* maps every referenced user id (owner and members) to its record,
    or ``None`` when the store has none.
    """
    members = [
        MemberView(
            office_id=m.office_id,
            user_id=m.user_id,
            is_owner=bool(m.is_owner),
            joined_at=m.joined_at,
            user=resolve_user(users, m.user_id),
        )
        for m in memberships
    ]
    return OfficeView(
        id=office.id,
        name=office.name,
        description=office.description,
        is_private=bool(office.is_private),
        owner_id=office.owner_id,
        status=office.status,
        voice_channel_id=office.voice_channel_id,
        created_at=office.created_at,
        owner=resolve_user(users, office.owner_id),
        members=members,
        member_count=len(members),
    )
