"""
tests/test_views.py — Office View Enrichment Tests
===================================================
"""

from __future__ import annotations

from datetime import UTC, datetime

from officehub.database.models import Office, OfficeMember, User
from officehub.services.views import build_office_view

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _office() -> Office:
    return Office(
        id=1, name="Alpha", owner_id="U1", is_private=True,
        status="active", voice_channel_id=None, created_at=NOW,
    )


def _member(uid: str, owner: bool = False) -> OfficeMember:
    return OfficeMember(office_id=1, user_id=uid, is_owner=owner, joined_at=NOW)


def test_resolves_owner_and_members():
    alice = User(id="U1", username="alice", discriminator="0001", is_admin=False)
    bob = User(id="U2", username="bob", discriminator="0002", is_admin=False)

    view = build_office_view(
        _office(), [_member("U1", True), _member("U2")], {"U1": alice, "U2": bob}
    )

    assert view.owner.username == "alice"
    assert [m.user.username for m in view.members] == ["alice", "bob"]
    assert view.member_count == 2


def test_dangling_references_become_placeholders():
    view = build_office_view(
        _office(), [_member("U1", True), _member("U2")], {"U1": None, "U2": None}
    )

    assert view.owner.id == "U1"
    assert view.owner.username == "Unknown"
    assert view.owner.discriminator == "0000"
    assert view.owner.is_admin is False
    assert [m.user.username for m in view.members] == ["Unknown", "Unknown"]
    assert view.member_count == 2


def test_empty_membership():
    view = build_office_view(_office(), [], {"U1": None})
    assert view.members == []
    assert view.member_count == 0


def test_to_dict_serialises_datetimes():
    data = build_office_view(_office(), [_member("U1", True)], {"U1": None}).to_dict()
    assert data["created_at"] == NOW.isoformat()
    assert data["members"][0]["joined_at"] == NOW.isoformat()
    assert data["owner"]["username"] == "Unknown"
