"""
officehub.database.store — Persistence Backends
================================================

Record-level CRUD for users, offices and office memberships.  No business
rules live here; :class:`~officehub.services.office_service.OfficeDirectory`
owns those.

Two interchangeable backends implement :class:`PersistenceStore`:

* :class:`SqlStore` — durable, one short session per call, returns detached
  ORM instances.  Foreign keys are checked at write time.
* :class:`MemoryStore` — non-durable, single process.  Keeps plain dict rows
  and hands out fresh model instances, so a caller mutating a returned
  object never mutates the store.  It does not check user references;
  dangling ones are rendered as placeholders when views are built.

Both are synchronous.  Async callers go through
:func:`officehub.database.engine.run_db`.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError

from officehub.database.engine import get_session
from officehub.database.models import Office, OfficeMember, OfficeStatus, User
from officehub.services.exceptions import (
    AlreadyMemberError,
    ConflictError,
    OfficeNotFoundError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

# Columns a caller may change after creation
USER_MUTABLE_FIELDS = frozenset({"username", "discriminator", "avatar", "is_admin"})
OFFICE_MUTABLE_FIELDS = frozenset(
    {"name", "description", "is_private", "status", "voice_channel_id"}
)


def _pick(fields: dict[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k in allowed}


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------
class PersistenceStore(Protocol):
    """What the office service needs from a storage backend."""

    # Users
    def get_user(self, user_id: str) -> User | None: ...
    def create_user(
        self,
        *,
        id: str,
        username: str,
        discriminator: str = "0",
        avatar: str | None = None,
        is_admin: bool = False,
    ) -> User: ...
    def update_user(self, user_id: str, **fields: Any) -> User: ...
    def user_owns_any_office(self, user_id: str) -> bool: ...

    # Offices
    def list_offices(self) -> list[Office]: ...
    def get_office(self, office_id: int) -> Office | None: ...
    def list_offices_by_owner(self, user_id: str) -> list[Office]: ...
    def insert_office(
        self,
        *,
        name: str,
        owner_id: str,
        description: str | None = None,
        is_private: bool = True,
    ) -> Office: ...
    def update_office(self, office_id: int, **fields: Any) -> Office: ...
    def delete_office(self, office_id: int) -> bool: ...

    # Memberships
    def list_memberships(self, office_id: int) -> list[OfficeMember]: ...
    def list_memberships_by_user(self, user_id: str) -> list[OfficeMember]: ...
    def get_membership(self, office_id: int, user_id: str) -> OfficeMember | None: ...
    def insert_membership(
        self, *, office_id: int, user_id: str, is_owner: bool = False
    ) -> OfficeMember: ...
    def delete_membership(self, office_id: int, user_id: str) -> bool: ...


# ---------------------------------------------------------------------------
# In-process backend
# ---------------------------------------------------------------------------
class MemoryStore:
    """Mapping-backed store for development and tests.

    A single lock serialises every call; ``run_db`` invokes the store from
    worker threads.
    """

    def __init__(self) -> None:
        self._users: dict[str, dict[str, Any]] = {}
        self._offices: dict[int, dict[str, Any]] = {}
        self._members: dict[tuple[int, str], dict[str, Any]] = {}
        self._next_office_id = 1
        self._lock = threading.Lock()

    # -- Users --------------------------------------------------------------
    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            row = self._users.get(user_id)
            return User(**row) if row else None

    def create_user(
        self,
        *,
        id: str,
        username: str,
        discriminator: str = "0",
        avatar: str | None = None,
        is_admin: bool = False,
    ) -> User:
        with self._lock:
            if id in self._users:
                raise ConflictError(f"User {id} already exists")
            now = datetime.now(UTC)
            row = {
                "id": id,
                "username": username,
                "discriminator": discriminator,
                "avatar": avatar,
                "is_admin": is_admin,
                "created_at": now,
                "updated_at": now,
            }
            self._users[id] = row
            return User(**row)

    def update_user(self, user_id: str, **fields: Any) -> User:
        with self._lock:
            row = self._users.get(user_id)
            if row is None:
                raise UserNotFoundError(user_id)
            row.update(_pick(fields, USER_MUTABLE_FIELDS))
            row["updated_at"] = datetime.now(UTC)
            return User(**row)

    def user_owns_any_office(self, user_id: str) -> bool:
        with self._lock:
            return any(o["owner_id"] == user_id for o in self._offices.values())

    # -- Offices ------------------------------------------------------------
    def list_offices(self) -> list[Office]:
        with self._lock:
            return [Office(**row) for _, row in sorted(self._offices.items())]

    def get_office(self, office_id: int) -> Office | None:
        with self._lock:
            row = self._offices.get(office_id)
            return Office(**row) if row else None

    def list_offices_by_owner(self, user_id: str) -> list[Office]:
        with self._lock:
            return [
                Office(**row)
                for _, row in sorted(self._offices.items())
                if row["owner_id"] == user_id
            ]

    def insert_office(
        self,
        *,
        name: str,
        owner_id: str,
        description: str | None = None,
        is_private: bool = True,
    ) -> Office:
        with self._lock:
            office_id = self._next_office_id
            self._next_office_id += 1
            row = {
                "id": office_id,
                "name": name,
                "description": description,
                "is_private": is_private,
                "owner_id": owner_id,
                "status": OfficeStatus.ACTIVE.value,
                "voice_channel_id": None,
                "created_at": datetime.now(UTC),
            }
            self._offices[office_id] = row
            return Office(**row)

    def update_office(self, office_id: int, **fields: Any) -> Office:
        with self._lock:
            row = self._offices.get(office_id)
            if row is None:
                raise OfficeNotFoundError(office_id)
            row.update(_pick(fields, OFFICE_MUTABLE_FIELDS))
            return Office(**row)

    def delete_office(self, office_id: int) -> bool:
        with self._lock:
            if self._offices.pop(office_id, None) is None:
                return False
            # Mirror ON DELETE CASCADE
            for key in [k for k in self._members if k[0] == office_id]:
                del self._members[key]
            return True

    # -- Memberships --------------------------------------------------------
    @staticmethod
    def _member_sort_key(row: dict[str, Any]):
        return (not row["is_owner"], row["joined_at"], row["user_id"])

    def list_memberships(self, office_id: int) -> list[OfficeMember]:
        with self._lock:
            rows = [r for (oid, _), r in self._members.items() if oid == office_id]
            return [OfficeMember(**r) for r in sorted(rows, key=self._member_sort_key)]

    def list_memberships_by_user(self, user_id: str) -> list[OfficeMember]:
        with self._lock:
            rows = [r for (_, uid), r in self._members.items() if uid == user_id]
            return [OfficeMember(**r) for r in sorted(rows, key=lambda r: r["office_id"])]

    def get_membership(self, office_id: int, user_id: str) -> OfficeMember | None:
        with self._lock:
            row = self._members.get((office_id, user_id))
            return OfficeMember(**row) if row else None

    def insert_membership(
        self, *, office_id: int, user_id: str, is_owner: bool = False
    ) -> OfficeMember:
        with self._lock:
            if office_id not in self._offices:
                raise OfficeNotFoundError(office_id)
            key = (office_id, user_id)
            if key in self._members:
                raise AlreadyMemberError(office_id, user_id)
            row = {
                "office_id": office_id,
                "user_id": user_id,
                "is_owner": is_owner,
                "joined_at": datetime.now(UTC),
            }
            self._members[key] = row
            return OfficeMember(**row)

    def delete_membership(self, office_id: int, user_id: str) -> bool:
        with self._lock:
            return self._members.pop((office_id, user_id), None) is not None


# ---------------------------------------------------------------------------
# Relational backend
# ---------------------------------------------------------------------------
class SqlStore:
    """SQLAlchemy-backed store.  Every method is one short transaction."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @staticmethod
    def _detach(session, obj):
        """Load server-side defaults, then hand *obj* out of the session."""
        session.flush()
        session.refresh(obj)
        session.expunge(obj)
        return obj

    # -- Users --------------------------------------------------------------
    def get_user(self, user_id: str) -> User | None:
        with get_session(self.engine) as session:
            return session.get(User, user_id)

    def create_user(
        self,
        *,
        id: str,
        username: str,
        discriminator: str = "0",
        avatar: str | None = None,
        is_admin: bool = False,
    ) -> User:
        with get_session(self.engine) as session:
            if session.get(User, id) is not None:
                raise ConflictError(f"User {id} already exists")
            user = User(
                id=id,
                username=username,
                discriminator=discriminator,
                avatar=avatar,
                is_admin=is_admin,
            )
            session.add(user)
            return self._detach(session, user)

    def update_user(self, user_id: str, **fields: Any) -> User:
        with get_session(self.engine) as session:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            for key, value in _pick(fields, USER_MUTABLE_FIELDS).items():
                setattr(user, key, value)
            return self._detach(session, user)

    def user_owns_any_office(self, user_id: str) -> bool:
        with get_session(self.engine) as session:
            found = session.scalar(
                select(Office.id).where(Office.owner_id == user_id).limit(1)
            )
            return found is not None

    # -- Offices ------------------------------------------------------------
    def list_offices(self) -> list[Office]:
        with get_session(self.engine) as session:
            return list(session.scalars(select(Office).order_by(Office.id)).all())

    def get_office(self, office_id: int) -> Office | None:
        with get_session(self.engine) as session:
            return session.get(Office, office_id)

    def list_offices_by_owner(self, user_id: str) -> list[Office]:
        with get_session(self.engine) as session:
            return list(session.scalars(
                select(Office).where(Office.owner_id == user_id).order_by(Office.id)
            ).all())

    def insert_office(
        self,
        *,
        name: str,
        owner_id: str,
        description: str | None = None,
        is_private: bool = True,
    ) -> Office:
        with get_session(self.engine) as session:
            if session.get(User, owner_id) is None:
                raise UserNotFoundError(owner_id)
            office = Office(
                name=name,
                owner_id=owner_id,
                description=description,
                is_private=is_private,
                status=OfficeStatus.ACTIVE.value,
            )
            session.add(office)
            return self._detach(session, office)

    def update_office(self, office_id: int, **fields: Any) -> Office:
        with get_session(self.engine) as session:
            office = session.get(Office, office_id)
            if office is None:
                raise OfficeNotFoundError(office_id)
            for key, value in _pick(fields, OFFICE_MUTABLE_FIELDS).items():
                setattr(office, key, value)
            return self._detach(session, office)

    def delete_office(self, office_id: int) -> bool:
        with get_session(self.engine) as session:
            office = session.get(Office, office_id)
            if office is None:
                return False
            session.delete(office)
            return True

    # -- Memberships --------------------------------------------------------
    def list_memberships(self, office_id: int) -> list[OfficeMember]:
        with get_session(self.engine) as session:
            return list(session.scalars(
                select(OfficeMember)
                .where(OfficeMember.office_id == office_id)
                .order_by(
                    OfficeMember.is_owner.desc(),
                    OfficeMember.joined_at,
                    OfficeMember.user_id,
                )
            ).all())

    def list_memberships_by_user(self, user_id: str) -> list[OfficeMember]:
        with get_session(self.engine) as session:
            return list(session.scalars(
                select(OfficeMember)
                .where(OfficeMember.user_id == user_id)
                .order_by(OfficeMember.office_id)
            ).all())

    def get_membership(self, office_id: int, user_id: str) -> OfficeMember | None:
        with get_session(self.engine) as session:
            return session.get(OfficeMember, (office_id, user_id))

    def insert_membership(
        self, *, office_id: int, user_id: str, is_owner: bool = False
    ) -> OfficeMember:
        with get_session(self.engine) as session:
            if session.get(Office, office_id) is None:
                raise OfficeNotFoundError(office_id)
            if session.get(User, user_id) is None:
                raise UserNotFoundError(user_id)
            if session.get(OfficeMember, (office_id, user_id)) is not None:
                raise AlreadyMemberError(office_id, user_id)
            member = OfficeMember(office_id=office_id, user_id=user_id, is_owner=is_owner)
            session.add(member)
            try:
                session.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent insert of the same pair
                raise AlreadyMemberError(office_id, user_id) from exc
            return self._detach(session, member)

    def delete_membership(self, office_id: int, user_id: str) -> bool:
        with get_session(self.engine) as session:
            member = session.get(OfficeMember, (office_id, user_id))
            if member is None:
                return False
            session.delete(member)
            return True
