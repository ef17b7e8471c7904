"""SQLAlchemy ORM models for the permission tables.

Domain tables (properties, units, leases, ...) are not mapped here; the
record source reads them with lightweight ``table()/column()`` constructs.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for the permission models."""

    pass


class ProfileRow(Base):
    """Named permission bundle; ``organization_id`` NULL marks a global profile."""

    __tablename__ = "profiles"
    __table_args__ = (UniqueConstraint("organization_id", "name", name="uq_profiles_organization_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_system: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="System profiles cannot be deleted or renamed",
    )
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class ObjectPermissionRow(Base):
    __tablename__ = "profile_object_permissions"
    __table_args__ = (UniqueConstraint("profile_id", "object_type", name="uq_profile_object_permissions"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    object_type: Mapped[str] = mapped_column(String(64), nullable=False)
    access_level: Mapped[str] = mapped_column(String(16), nullable=False, default="None")
    can_create: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_view_all: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class FieldPermissionRow(Base):
    __tablename__ = "profile_field_permissions"
    __table_args__ = (
        UniqueConstraint("profile_id", "object_type", "field_name", name="uq_profile_field_permissions"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    object_type: Mapped[str] = mapped_column(String(64), nullable=False)
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    access_level: Mapped[str] = mapped_column(String(16), nullable=False, default="None")
    can_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_sensitive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class PlanFeatureRow(Base):
    __tablename__ = "plan_features"
    __table_args__ = (UniqueConstraint("plan_name", "feature_key", name="uq_plan_features"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    plan_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    feature_key: Mapped[str] = mapped_column(String(100), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    limits: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)


class UserRow(Base):
    """Minimal users table: organization membership and profile reference."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


__all__ = [
    "Base",
    "FieldPermissionRow",
    "ObjectPermissionRow",
    "PlanFeatureRow",
    "ProfileRow",
    "UserRow",
]
