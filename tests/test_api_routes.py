"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Drives the HTTP API through the FastAPI TestClient with an in-memory store,
a recording voice gateway and a mocked guild client.

These tests verify:
- Auth guards (401 without a valid token, 403 for non-admins)
- Office and membership lifecycle through the public endpoints
- Domain errors surfacing as the right status codes
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from fastapi.testclient import TestClient

from officehub.api import deps
from officehub.api.main import app
from officehub.config import OfficeHubConfig
from officehub.database.store import MemoryStore
from officehub.services.exceptions import GatewayError
from officehub.services.guild_service import DiscordGuildClient

ADMIN_ID = "1"
ALICE_ID = "2"
BOB_ID = "3"


@pytest.fixture
def store():
    """Routes only need one backend; the store contract is covered elsewhere."""
    s = MemoryStore()
    s.create_user(id=ADMIN_ID, username="admin", discriminator="0001", is_admin=True)
    s.create_user(id=ALICE_ID, username="alice", discriminator="0002")
    s.create_user(id=BOB_ID, username="bob", discriminator="0003")
    return s


@pytest.fixture
def guild():
    client = MagicMock(spec=DiscordGuildClient)
    client.has_role = AsyncMock(return_value=False)
    client.find_member = AsyncMock(return_value=None)
    client.search_members = AsyncMock(return_value=[])
    return client


@pytest.fixture
def client(store, gateway, guild):
    """Create a FastAPI TestClient with all external dependencies overridden."""
    cfg = OfficeHubConfig(
        community_name="Test",
        guild_id="100",
        dashboard_port=8000,
        admin_role_id="555",
        voice_category_id="900",
    )
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_voice_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_guild_client] = lambda: guild
    app.dependency_overrides[deps.get_config] = lambda: cfg
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def _token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, deps.JWT_SECRET, algorithm=deps.JWT_ALGORITHM)


def _auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {_token(user_id)}"}


def _create(client, owner=ALICE_ID, name="Alpha", private=True) -> dict:
    resp = client.post(
        "/api/offices",
        json={"name": name, "owner_id": owner, "is_private": private},
        headers=_auth(ADMIN_ID),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ===========================================================================
# Health & auth guards
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestAuthGuards:
    @pytest.mark.parametrize("endpoint", ["/api/offices", "/api/offices/me", "/api/auth/me"])
    def test_missing_token(self, client, endpoint):
        assert client.get(endpoint).status_code == 401

    def test_invalid_token(self, client):
        resp = client.get("/api/offices/me", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_unknown_subject(self, client):
        assert client.get("/api/offices/me", headers=_auth("999")).status_code == 401

    def test_list_all_requires_admin(self, client):
        assert client.get("/api/offices", headers=_auth(ALICE_ID)).status_code == 403
        assert client.get("/api/offices", headers=_auth(ADMIN_ID)).status_code == 200

    def test_create_requires_admin(self, client):
        resp = client.post(
            "/api/offices", json={"name": "X", "owner_id": ALICE_ID}, headers=_auth(ALICE_ID)
        )
        assert resp.status_code == 403

    def test_admin_role_is_rechecked(self, client, guild, store):
        guild.has_role.return_value = True

        resp = client.get("/api/auth/me", headers=_auth(ALICE_ID))

        assert resp.status_code == 200
        assert resp.json()["is_admin"] is True
        assert store.get_user(ALICE_ID).is_admin is True


# ===========================================================================
# Offices
# ===========================================================================
class TestOffices:
    def test_create_returns_enriched_office(self, client, gateway):
        body = _create(client)

        assert body["name"] == "Alpha"
        assert body["owner"]["username"] == "alice"
        assert body["member_count"] == 1
        assert body["members"][0]["is_owner"] is True
        assert body["voice_channel_id"] is not None
        assert gateway.calls_to("create_channel") == [("create_channel", "Office-Alpha", "900")]

    def test_second_office_for_owner_rejected(self, client):
        _create(client)
        resp = client.post(
            "/api/offices", json={"name": "Beta", "owner_id": ALICE_ID}, headers=_auth(ADMIN_ID)
        )
        assert resp.status_code == 400

    def test_create_with_tagged_owner(self, client, guild, store):
        guild.find_member.return_value = {"id": "77", "username": "dave", "discriminator": "4444"}

        body = _create(client, owner="dave#4444")

        assert body["owner_id"] == "77"
        assert store.get_user("77") is not None

    def test_create_with_unknown_tag(self, client):
        resp = client.post(
            "/api/offices", json={"name": "X", "owner_id": "ghost#0000"}, headers=_auth(ADMIN_ID)
        )
        assert resp.status_code == 404

    def test_my_office(self, client):
        assert client.get("/api/offices/me", headers=_auth(ALICE_ID)).status_code == 404
        office = _create(client)

        resp = client.get("/api/offices/me", headers=_auth(ALICE_ID))
        assert resp.status_code == 200
        assert resp.json()["id"] == office["id"]

    def test_auth_me_reports_office(self, client):
        assert client.get("/api/auth/me", headers=_auth(ALICE_ID)).json()["has_office"] is False
        _create(client)
        assert client.get("/api/auth/me", headers=_auth(ALICE_ID)).json()["has_office"] is True

    def test_private_office_hidden_from_strangers(self, client):
        office = _create(client)
        assert client.get(f"/api/offices/{office['id']}", headers=_auth(BOB_ID)).status_code == 403
        assert client.get(f"/api/offices/{office['id']}", headers=_auth(ALICE_ID)).status_code == 200

    def test_get_missing_office(self, client):
        assert client.get("/api/offices/404", headers=_auth(ADMIN_ID)).status_code == 404

    def test_available_lists_public_offices(self, client):
        public = _create(client, private=False)
        _create(client, owner=ADMIN_ID, name="Hidden")

        resp = client.get("/api/offices/available", headers=_auth(BOB_ID))
        assert [o["id"] for o in resp.json()] == [public["id"]]

    def test_rename(self, client, gateway):
        office = _create(client)

        resp = client.patch(
            f"/api/offices/{office['id']}", json={"name": "Beta"}, headers=_auth(ALICE_ID)
        )

        assert resp.status_code == 200
        assert resp.json()["name"] == "Beta"
        assert gateway.calls_to("rename_channel") == [
            ("rename_channel", office["voice_channel_id"], "Office-Beta")
        ]

    def test_invalid_status(self, client):
        office = _create(client)
        resp = client.patch(
            f"/api/offices/{office['id']}", json={"status": "asleep"}, headers=_auth(ALICE_ID)
        )
        assert resp.status_code == 422

    def test_stranger_cannot_edit(self, client):
        office = _create(client)
        resp = client.patch(
            f"/api/offices/{office['id']}", json={"name": "Mine"}, headers=_auth(BOB_ID)
        )
        assert resp.status_code == 403

    def test_delete(self, client, gateway, store):
        office = _create(client)

        resp = client.delete(f"/api/offices/{office['id']}", headers=_auth(ALICE_ID))

        assert resp.status_code == 204
        assert store.get_office(office["id"]) is None
        assert gateway.calls_to("delete_channel") == [("delete_channel", office["voice_channel_id"])]


# ===========================================================================
# Membership
# ===========================================================================
class TestMembership:
    def test_join_public(self, client, store):
        office = _create(client, private=False)

        resp = client.post(f"/api/offices/{office['id']}/join", headers=_auth(BOB_ID))

        assert resp.status_code == 200
        assert store.get_membership(office["id"], BOB_ID) is not None

    def test_join_private_forbidden(self, client):
        office = _create(client)
        assert client.post(f"/api/offices/{office['id']}/join", headers=_auth(BOB_ID)).status_code == 403

    def test_join_twice(self, client):
        office = _create(client, private=False)
        client.post(f"/api/offices/{office['id']}/join", headers=_auth(BOB_ID))
        assert client.post(f"/api/offices/{office['id']}/join", headers=_auth(BOB_ID)).status_code == 400

    def test_owner_invites(self, client, gateway):
        office = _create(client)

        resp = client.post(
            f"/api/offices/{office['id']}/invite", json={"user_id": BOB_ID}, headers=_auth(ALICE_ID)
        )

        assert resp.status_code == 200
        grants = [c for c in gateway.calls_to("set_member_permission") if c[2] == BOB_ID]
        assert len(grants) == 1

    def test_stranger_cannot_invite(self, client):
        office = _create(client)
        resp = client.post(
            f"/api/offices/{office['id']}/invite", json={"user_id": BOB_ID}, headers=_auth(BOB_ID)
        )
        assert resp.status_code == 403

    def test_invite_unknown_user(self, client):
        office = _create(client)
        resp = client.post(
            f"/api/offices/{office['id']}/invite", json={"user_id": "999"}, headers=_auth(ALICE_ID)
        )
        assert resp.status_code == 404

    def test_remove_member(self, client, store):
        office = _create(client)
        client.post(
            f"/api/offices/{office['id']}/invite", json={"user_id": BOB_ID}, headers=_auth(ALICE_ID)
        )

        resp = client.delete(f"/api/offices/{office['id']}/members/{BOB_ID}", headers=_auth(ALICE_ID))

        assert resp.status_code == 204
        assert store.get_membership(office["id"], BOB_ID) is None

    def test_remove_owner_rejected(self, client):
        office = _create(client)
        resp = client.delete(
            f"/api/offices/{office['id']}/members/{ALICE_ID}", headers=_auth(ADMIN_ID)
        )
        assert resp.status_code == 400

    def test_remove_non_member(self, client):
        office = _create(client)
        resp = client.delete(f"/api/offices/{office['id']}/members/{BOB_ID}", headers=_auth(ALICE_ID))
        assert resp.status_code == 404


# ===========================================================================
# User search
# ===========================================================================
class TestUserSearch:
    def test_short_query(self, client):
        assert client.get("/api/users/search?q=a", headers=_auth(ALICE_ID)).status_code == 400

    def test_returns_matches(self, client, guild):
        guild.search_members.return_value = [
            {"id": "3", "username": "bob", "discriminator": "0003", "avatar": None}
        ]

        resp = client.get("/api/users/search?q=bo", headers=_auth(ALICE_ID))

        assert resp.status_code == 200
        assert resp.json()[0]["username"] == "bob"
        guild.search_members.assert_awaited_once_with("bo")

    def test_gateway_failure(self, client, guild):
        guild.search_members.side_effect = GatewayError("discord down")
        assert client.get("/api/users/search?q=bob", headers=_auth(ALICE_ID)).status_code == 500
