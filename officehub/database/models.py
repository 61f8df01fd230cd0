"""
officehub.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- users           — Discord members who have signed in (snowflake PK)
- offices         — Virtual offices, each optionally backed by a voice channel
- office_members  — Who belongs to which office (composite PK)
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all OfficeHub ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OfficeStatus(enum.StrEnum):
    """Presence state of an office.  Only ACTIVE is assigned today."""
    ACTIVE = "active"
    AWAY = "away"
    OFFLINE = "offline"


# ---------------------------------------------------------------------------
# Users — one row per Discord member who has signed in
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)  # Discord snowflake
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    discriminator: Mapped[str] = mapped_column(String(10), nullable=False, default="0")
    avatar: Mapped[str | None] = mapped_column(String(100), default=None)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.username!r} admin={self.is_admin}>"


# ---------------------------------------------------------------------------
# Offices
# ---------------------------------------------------------------------------
class Office(Base):
    __tablename__ = "offices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    owner_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OfficeStatus.ACTIVE.value
    )
    voice_channel_id: Mapped[str | None] = mapped_column(String(32), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    memberships: Mapped[list[OfficeMember]] = relationship(
        back_populates="office", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_offices_owner_id", "owner_id"),
        {"sqlite_autoincrement": True},  # never reuse ids of deleted offices
    )

    def __repr__(self) -> str:
        return f"<Office id={self.id} name={self.name!r} owner={self.owner_id}>"


# ---------------------------------------------------------------------------
# OfficeMember — (office, user) is unique; exactly one row per office is the owner
# ---------------------------------------------------------------------------
class OfficeMember(Base):
    __tablename__ = "office_members"

    office_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("offices.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), primary_key=True
    )
    is_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    office: Mapped[Office] = relationship(back_populates="memberships")

    __table_args__ = (
        Index("ix_office_members_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<OfficeMember office={self.office_id} user={self.user_id} "
            f"owner={self.is_owner}>"
        )

