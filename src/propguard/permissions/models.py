"""Typed records for profiles, permissions, plan features and check results.

These are Pydantic models; every permission row is an explicit record so
that a missing row and a ``False`` flag are never confused.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from .constants import AccessLevel, Action, DenialCode, FieldAccessLevel, SecurityLevel
from .registry import validate_object_type_key


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(BaseModel):
    """Named, reusable permission bundle assigned to users.

    ``organization_id=None`` marks a global profile shared by every tenant.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    organization_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    is_system: bool = False
    is_global: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ObjectPermission(BaseModel):
    """Object-level grant of one profile on one object type.

    ``access_level`` is a denormalised summary of the booleans. It is
    recomputed on every write and never consulted for decisions.
    """

    profile_id: Optional[str] = None
    object_type: str = ""
    access_level: AccessLevel = AccessLevel.NONE
    can_create: bool = False
    can_read: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_view_all: bool = False

    def derived_access_level(self) -> AccessLevel:
        """Summary level computed from the booleans."""
        if self.can_create and self.can_edit and self.can_delete and self.can_view_all:
            return AccessLevel.ALL
        if (self.can_create or self.can_edit) and not self.can_delete:
            return AccessLevel.READ_WRITE
        if self.can_read:
            return AccessLevel.READ
        return AccessLevel.NONE

    def allows(self, action: Action) -> bool:
        """Map an action onto the matching boolean."""
        if action is Action.READ:
            return self.can_read
        if action is Action.CREATE:
            return self.can_create
        if action is Action.EDIT:
            return self.can_edit
        if action is Action.DELETE:
            return self.can_delete
        if action is Action.VIEW_ALL:
            return self.can_view_all and self.can_read
        return False


class FieldPermission(BaseModel):
    """Field-level grant of one profile on one field of one object type."""

    profile_id: Optional[str] = None
    object_type: str = ""
    field_name: str = ""
    access_level: FieldAccessLevel = FieldAccessLevel.NONE
    can_read: bool = False
    can_edit: bool = False
    is_sensitive: bool = False

    def derived_access_level(self) -> FieldAccessLevel:
        if self.can_edit:
            return FieldAccessLevel.READ_WRITE
        if self.can_read:
            return FieldAccessLevel.READ
        return FieldAccessLevel.NONE


class PlanFeature(BaseModel):
    """One feature switch of one subscription plan."""

    plan_name: str
    feature_key: str
    is_enabled: bool = True
    limits: Optional[dict[str, Any]] = None


class Ownership(BaseModel):
    """Resolved owner of an object instance.

    ``is_global`` marks rows shared by every tenant (global profiles);
    they carry no organization and are readable across tenants.
    """

    organization_id: Optional[str] = None
    owner_id: Optional[str] = None
    created_by: Optional[str] = None
    is_global: bool = False


class PermissionCache:
    """Per-request cache of permission rows.

    Lives on a SecurityContext and dies with it.
    """

    __slots__ = ("enabled_features", "object_permissions", "field_permissions")

    def __init__(self) -> None:
        self.enabled_features: Optional[frozenset[str]] = None
        self.object_permissions: Optional[dict[str, ObjectPermission]] = None
        self.field_permissions: dict[str, dict[str, FieldPermission]] = {}


class SecurityContext(BaseModel):
    """Identity of the caller for one request.

    Built fresh per request by the API layer from the identity provider's
    session and passed explicitly to every check.

    Example::

        ctx = SecurityContext(
            user_id="u-1",
            organization_id="org-1",
            profile_id="p-agent",
            plan_name="premium",
        )
        result = await checker.check_security(ctx, SecurityCheckParams(action=Action.READ))
    """

    user_id: Optional[str] = None
    organization_id: Optional[str] = None
    profile_id: Optional[str] = None
    plan_name: str = ""
    request_id: str = Field(default_factory=lambda: uuid4().hex)

    _cache: PermissionCache = PrivateAttr(default_factory=PermissionCache)

    @property
    def cache(self) -> PermissionCache:
        return self._cache

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id) and bool(self.organization_id)


class SecurityCheckParams(BaseModel):
    """What the caller wants to do."""

    action: Action
    feature_key: Optional[str] = None
    object_type: Optional[str] = None
    object_id: Optional[str] = None
    field_name: Optional[str] = None

    @field_validator("object_type")
    @classmethod
    def validate_object_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_object_type_key(v)


class PlanFeatureCheck(BaseModel):
    feature_key: str
    enabled: bool


class ProfilePermissionCheck(BaseModel):
    action: Action
    object_type: Optional[str] = None
    allowed: bool


class ObjectPermissionCheck(BaseModel):
    object_type: str
    object_id: Optional[str] = None
    action: Action
    allowed: bool


class FieldPermissionCheck(BaseModel):
    object_type: str
    field_name: str
    action: Action
    allowed: bool
    explicit: bool = Field(
        default=True,
        description="False when no FieldPermission row existed and the absence policy decided",
    )


class SecurityCheckResult(BaseModel):
    """Outcome of a four-level check.

    Each ``*_check`` is set only when that level was evaluated.
    """

    allowed: bool
    reason: Optional[str] = None
    failed_level: Optional[SecurityLevel] = None
    denial_code: Optional[DenialCode] = None
    plan_check: Optional[PlanFeatureCheck] = None
    profile_check: Optional[ProfilePermissionCheck] = None
    object_check: Optional[ObjectPermissionCheck] = None
    field_check: Optional[FieldPermissionCheck] = None

    @property
    def denied(self) -> bool:
        return not self.allowed

    @property
    def evaluated_levels(self) -> tuple[SecurityLevel, ...]:
        levels = []
        if self.plan_check is not None:
            levels.append(SecurityLevel.PLAN)
        if self.profile_check is not None:
            levels.append(SecurityLevel.PROFILE)
        if self.object_check is not None:
            levels.append(SecurityLevel.OBJECT)
        if self.field_check is not None:
            levels.append(SecurityLevel.FIELD)
        return tuple(levels)


class ProfileAccessSummary(BaseModel):
    """Aggregate view of a profile's object permissions, for UI and reporting."""

    profile_id: str
    profile_name: str
    overall_access_level: AccessLevel
    object_access_levels: dict[str, AccessLevel] = Field(default_factory=dict)
    can_create_any: bool = False
    can_edit_any: bool = False
    can_delete_any: bool = False
    can_view_all_any: bool = False
    total_objects: int = 0
    accessible_objects: int = 0
    permissions: list[ObjectPermission] = Field(default_factory=list)


__all__ = [
    "FieldPermission",
    "FieldPermissionCheck",
    "ObjectPermission",
    "ObjectPermissionCheck",
    "Ownership",
    "PermissionCache",
    "PlanFeature",
    "PlanFeatureCheck",
    "Profile",
    "ProfileAccessSummary",
    "ProfilePermissionCheck",
    "SecurityCheckParams",
    "SecurityCheckResult",
    "SecurityContext",
]
