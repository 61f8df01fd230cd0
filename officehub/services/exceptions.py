"""
Domain exceptions for offices and memberships.

These represent business rule violations and missing records.  Stores and
the office service raise them; the API layer converts them to HTTP
responses.  :class:`GatewayError` is the one exception the office service
never lets escape.
"""


class OfficeHubError(Exception):
    """Base exception for all OfficeHub service errors."""


# ---------------------------------------------------------------------------
# NotFound family (HTTP 404)
# ---------------------------------------------------------------------------
class NotFoundError(OfficeHubError):
    """Raised when a referenced record does not exist."""


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class OfficeNotFoundError(NotFoundError):
    def __init__(self, office_id: int):
        super().__init__(f"Office {office_id} not found")
        self.office_id = office_id


class MembershipNotFoundError(NotFoundError):
    def __init__(self, office_id: int, user_id: str):
        super().__init__(f"User {user_id} is not a member of office {office_id}")
        self.office_id = office_id
        self.user_id = user_id


# ---------------------------------------------------------------------------
# Conflict family (HTTP 400)
# ---------------------------------------------------------------------------
class ConflictError(OfficeHubError):
    """Raised when a write would break a uniqueness or structural rule."""


class AlreadyMemberError(ConflictError):
    def __init__(self, office_id: int, user_id: str):
        super().__init__(f"User {user_id} is already a member of office {office_id}")
        self.office_id = office_id
        self.user_id = user_id


class OfficeLimitError(ConflictError):
    """Raised when a user who already owns an office is given another."""

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} already owns an office")
        self.user_id = user_id


class CannotRemoveOwnerError(ConflictError):
    def __init__(self, office_id: int):
        super().__init__(f"Cannot remove the owner of office {office_id}")
        self.office_id = office_id


# ---------------------------------------------------------------------------
# Authorization (HTTP 403)
# ---------------------------------------------------------------------------
class ForbiddenError(OfficeHubError):
    """Raised when an access policy check fails."""


# ---------------------------------------------------------------------------
# External voice platform
# ---------------------------------------------------------------------------
class GatewayError(OfficeHubError):
    """Raised by a voice channel gateway when a Discord call fails."""
