"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of officehub.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from officehub.database.engine import enable_sqlite_foreign_keys  # noqa: E402
from officehub.database.models import Base  # noqa: E402
from officehub.database.store import MemoryStore, SqlStore  # noqa: E402
from officehub.services.exceptions import GatewayError  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all OfficeHub tables and FK enforcement.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store-level behaviour is checked against both backends."""
    if request.param == "memory":
        return MemoryStore()
    return SqlStore(request.getfixturevalue("db_engine"))


class FakeVoiceGateway:
    """Records every call; methods listed in ``fail`` raise ``fail_with``."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.fail_with: type[Exception] = GatewayError
        self.channels: dict[str, str] = {}
        self._next_id = 9000

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail:
            raise self.fail_with(f"{name} failed (injected)")

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def create_channel(self, label, category_id=None):
        self.calls.append(("create_channel", label, category_id))
        self._maybe_fail("create_channel")
        channel_id = str(self._next_id)
        self._next_id += 1
        self.channels[channel_id] = label
        return channel_id

    async def delete_channel(self, channel_id):
        self.calls.append(("delete_channel", channel_id))
        self._maybe_fail("delete_channel")
        self.channels.pop(channel_id, None)

    async def rename_channel(self, channel_id, new_label):
        self.calls.append(("rename_channel", channel_id, new_label))
        self._maybe_fail("rename_channel")
        self.channels[channel_id] = new_label

    async def set_member_permission(self, channel_id, user_id, allow, deny):
        self.calls.append(("set_member_permission", channel_id, user_id, allow, deny))
        self._maybe_fail("set_member_permission")


@pytest.fixture
def gateway() -> FakeVoiceGateway:
    return FakeVoiceGateway()
