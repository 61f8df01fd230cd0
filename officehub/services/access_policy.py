"""
officehub.services.access_policy — Authorization Rules
=======================================================

Pure decisions over records the caller already fetched.  No I/O.

Removing an office's owner is not a permission question: the office
service rejects it for everyone, admins included.
"""

from __future__ import annotations

from officehub.database.models import Office, User
from officehub.services.exceptions import ForbiddenError
from officehub.services.views import OfficeView


def can_manage_office(user: User, office: Office | OfficeView) -> bool:
    """Admins and the office owner may edit, delete, invite and remove."""
    return bool(user.is_admin) or user.id == office.owner_id


def can_join(office: Office | OfficeView, user_id: str, is_already_member: bool) -> bool:
    """Public offices are open to anyone; private ones only to members."""
    return not office.is_private or is_already_member


def can_view_office(user: User, office: Office | OfficeView, is_member: bool) -> bool:
    return not office.is_private or is_member or can_manage_office(user, office)


def can_create_or_list_all_offices(user: User) -> bool:
    return bool(user.is_admin)


def require_manage_office(user: User, office: Office | OfficeView) -> None:
    """Raise :class:`ForbiddenError` unless *user* may manage *office*."""
    if not can_manage_office(user, office):
        raise ForbiddenError(f"User {user.id} may not manage office {office.id}")


def require_admin(user: User) -> None:
    if not can_create_or_list_all_offices(user):
        raise ForbiddenError(f"User {user.id} is not an admin")
