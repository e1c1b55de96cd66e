"""ORM models for the achievement ledger.

The profile tables (users, groups, institutes, user_settings) are owned by
the wider platform; only the columns this service reads or writes are mapped.
Ids that the platform exposes are UUID strings stored as VARCHAR(36).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orbit.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Roles and enumerations
# ---------------------------------------------------------------------------


class UserRole:
    STUDENT = "student"
    SPUTNIK = "sputnik"
    CURATOR = "curator"
    ADMIN = "admin"


ISSUER_ROLES = frozenset({UserRole.SPUTNIK, UserRole.CURATOR, UserRole.ADMIN})
STAFF_ROLES = ISSUER_ROLES


class OperationType:
    ISSUE = "issue"
    CANCEL = "cancel"


MAX_CANCELLATION_REASON_LENGTH = 256


# ---------------------------------------------------------------------------
# Profile store
# ---------------------------------------------------------------------------


class Institute(Base):
    """Maps to the 'institutes' table."""

    __tablename__ = "institutes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)


class Group(Base):
    """A class group inside an institute."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    institute_id: Mapped[int] = mapped_column(Integer, ForeignKey("institutes.id"), nullable=False)


class User(Base):
    """Maps to the 'users' table. ``balance`` is mutated only through orbit.ledger."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    last_name: Mapped[str] = mapped_column(String(64), nullable=False)
    patronymic: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default=UserRole.STUDENT)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    group_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("groups.id"), nullable=True, index=True)
    institute_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("institutes.id"), nullable=True, index=True
    )
    vk_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tg_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )

    group: Mapped[Group | None] = relationship("Group", lazy="joined")
    institute: Mapped[Institute | None] = relationship("Institute", lazy="joined")
    settings: Mapped[UserSettings | None] = relationship(
        "UserSettings", back_populates="user", uselist=False, lazy="joined"
    )


class UserSettings(Base):
    """Per-user preferences: leaderboard visibility and notification opt-ins."""

    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    is_visible_in_top: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    receive_tg_achievement_notifications: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    receive_vk_achievement_notifications: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    user: Mapped[User] = relationship("User", back_populates="settings")


class RefreshSession(Base):
    """Refresh token sessions. Only the expiry purge touches this table here."""

    __tablename__ = "refresh_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    refresh_token: Mapped[str] = mapped_column(String(36), nullable=False, default=_uuid)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Achievement catalog
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Catalog entry. Read-only at runtime."""

    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    reward: Mapped[int] = mapped_column(Integer, nullable=False)
    hidden_icon_path: Mapped[str] = mapped_column(String(256), nullable=False)
    opened_icon_path: Mapped[str] = mapped_column(String(256), nullable=False)
    sputnik_requirement: Mapped[str] = mapped_column(Text, nullable=False)
    student_requirement: Mapped[str] = mapped_column(Text, nullable=False)
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    rofl_description: Mapped[str | None] = mapped_column(Text, nullable=True)


# ---------------------------------------------------------------------------
# Ledger: awards, acknowledgments, audit
# ---------------------------------------------------------------------------


class IssuedAchievement(Base):
    """One award of an achievement to a student.

    ``reward`` is a snapshot of the catalog reward at issuance time.
    The row is flipped to canceled at most once and never deleted.
    """

    __tablename__ = "issued_achievements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    achievement_id: Mapped[str] = mapped_column(String(36), ForeignKey("achievements.id"), nullable=False)
    issuer_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    reward: Mapped[int] = mapped_column(Integer, nullable=False)
    is_canceled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    cancellation_reason: Mapped[str | None] = mapped_column(
        String(MAX_CANCELLATION_REASON_LENGTH), nullable=True
    )
    canceler_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    achievement: Mapped[Achievement] = relationship("Achievement", lazy="joined")
    issuer: Mapped[User] = relationship("User", foreign_keys=[issuer_id], lazy="joined")
    student: Mapped[User] = relationship("User", foreign_keys=[student_id], lazy="joined")
    canceler: Mapped[User | None] = relationship("User", foreign_keys=[canceler_id], lazy="joined")


class AwardAcknowledgment(Base):
    """Inbox state: whether the recipient has seen an award."""

    __tablename__ = "award_acknowledgments"

    issued_achievement_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("issued_achievements.id"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    is_seen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AchievementOperation(Base):
    """Append-only audit entry for every issue/cancel."""

    __tablename__ = "achievement_operations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    issued_achievement_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("issued_achievements.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    actor: Mapped[User] = relationship("User", lazy="joined")
    issued_achievement: Mapped[IssuedAchievement] = relationship("IssuedAchievement", lazy="joined")
