"""Dict-backed stores.

Used by the test-suite and by embedders without a database. Initial rows
can be passed to the constructors so fixtures stay synchronous.

Usage:
    plans = InMemoryPlanFeatureStore([PlanFeature(plan_name="basic", feature_key="tasks")])
    profiles = InMemoryProfileStore(
        profiles=[agent],
        object_permissions=[ObjectPermission(profile_id=agent.id, object_type="Lease", can_read=True)],
        users={"u-1": agent.id},
    )
    records = InMemoryRecordSource({"leases": {"l-1": {"unit_id": "u-9", "created_by": "u-1"}}})
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from ..exceptions import (
    DuplicateProfileError,
    ProfileInUseError,
    ProfileNotFoundError,
    SystemProfileProtectedError,
)
from ..permissions.models import FieldPermission, ObjectPermission, PlanFeature, Profile
from .base import (
    PlanFeatureStore,
    ProfileStore,
    RecordSource,
    normalize_field_permission,
    normalize_object_permission,
    sort_profiles,
)

logger = logging.getLogger(__name__)


class InMemoryPlanFeatureStore(PlanFeatureStore):
    def __init__(self, features: Iterable[PlanFeature] = ()) -> None:
        self._features: dict[tuple[str, str], PlanFeature] = {}
        for feature in features:
            self._features[(feature.plan_name, feature.feature_key)] = feature

    async def enabled_features(self, plan_name: str) -> frozenset[str]:
        return frozenset(
            key for (plan, key), feature in self._features.items() if plan == plan_name and feature.is_enabled
        )

    async def plan_features(self, plan_name: str) -> list[PlanFeature]:
        rows = [f for (plan, _), f in self._features.items() if plan == plan_name]
        return sorted(rows, key=lambda f: f.feature_key)

    async def set_plan_feature(
        self,
        plan_name: str,
        feature_key: str,
        is_enabled: bool,
        limits: Optional[dict[str, Any]] = None,
    ) -> PlanFeature:
        feature = PlanFeature(plan_name=plan_name, feature_key=feature_key, is_enabled=is_enabled, limits=limits)
        self._features[(plan_name, feature_key)] = feature
        return feature


class InMemoryProfileStore(ProfileStore):
    def __init__(
        self,
        profiles: Iterable[Profile] = (),
        object_permissions: Iterable[ObjectPermission] = (),
        field_permissions: Iterable[FieldPermission] = (),
        users: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._profiles: dict[str, Profile] = {p.id: p for p in profiles}
        self._object_permissions: dict[tuple[str, str], ObjectPermission] = {}
        self._field_permissions: dict[tuple[str, str, str], FieldPermission] = {}
        self._users: dict[str, str] = dict(users or {})

        for permission in object_permissions:
            row = normalize_object_permission(permission.profile_id or "", permission.object_type, permission)
            self._object_permissions[(row.profile_id, row.object_type)] = row
        for permission in field_permissions:
            row = normalize_field_permission(
                permission.profile_id or "", permission.object_type, permission.field_name, permission
            )
            self._field_permissions[(row.profile_id, row.object_type, row.field_name)] = row

    def _require(self, profile_id: str) -> Profile:
        profile = self._profiles.get(profile_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile {profile_id} not found", profile_id=profile_id)
        return profile

    # ---- Profiles ----

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        return self._profiles.get(profile_id)

    async def find_profile(self, organization_id: Optional[str], name: str) -> Optional[Profile]:
        for profile in self._profiles.values():
            if profile.organization_id == organization_id and profile.name == name:
                return profile
        return None

    async def list_profiles(
        self,
        organization_id: Optional[str] = None,
        include_global: bool = True,
    ) -> list[Profile]:
        return sort_profiles(
            p
            for p in self._profiles.values()
            if (include_global and p.organization_id is None)
            or (organization_id is not None and p.organization_id == organization_id)
        )

    async def create_profile(
        self,
        name: str,
        organization_id: Optional[str] = None,
        description: Optional[str] = None,
        is_system: bool = False,
    ) -> Profile:
        if await self.find_profile(organization_id, name) is not None:
            raise DuplicateProfileError(
                f"Profile {name!r} already exists", organization_id=organization_id, name=name
            )
        profile = Profile(
            organization_id=organization_id,
            name=name,
            description=description,
            is_system=is_system,
            is_global=organization_id is None,
        )
        self._profiles[profile.id] = profile
        return profile

    async def update_profile(
        self,
        profile_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Profile:
        profile = self._require(profile_id)
        changes: dict[str, Any] = {}
        if name is not None and name != profile.name:
            if profile.is_system:
                raise SystemProfileProtectedError(
                    f"System profile {profile.name!r} cannot be renamed", profile_id=profile_id
                )
            if await self.find_profile(profile.organization_id, name) is not None:
                raise DuplicateProfileError(f"Profile {name!r} already exists", name=name)
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if is_active is not None:
            changes["is_active"] = is_active
        if changes:
            changes["updated_at"] = datetime.now(timezone.utc)
            profile = profile.model_copy(update=changes)
            self._profiles[profile_id] = profile
        return profile

    async def delete_profile(self, profile_id: str) -> None:
        profile = self._require(profile_id)
        if profile.is_system:
            raise SystemProfileProtectedError(
                f"System profile {profile.name!r} cannot be deleted", profile_id=profile_id
            )
        users = await self.count_profile_users(profile_id)
        if users:
            raise ProfileInUseError(
                f"Profile {profile.name!r} is assigned to {users} user(s)", profile_id=profile_id, users=users
            )
        del self._profiles[profile_id]
        self._object_permissions = {k: v for k, v in self._object_permissions.items() if k[0] != profile_id}
        self._field_permissions = {k: v for k, v in self._field_permissions.items() if k[0] != profile_id}
        logger.info("Deleted profile %s", profile_id)

    # ---- Permission rows ----

    async def object_permissions(self, profile_id: str) -> list[ObjectPermission]:
        return [p for (pid, _), p in self._object_permissions.items() if pid == profile_id]

    async def field_permissions(
        self,
        profile_id: str,
        object_type: Optional[str] = None,
    ) -> list[FieldPermission]:
        return [
            p
            for (pid, otype, _), p in self._field_permissions.items()
            if pid == profile_id and (object_type is None or otype == object_type)
        ]

    async def set_object_permission(
        self,
        profile_id: str,
        object_type: str,
        permission: ObjectPermission,
    ) -> ObjectPermission:
        self._require(profile_id)
        row = normalize_object_permission(profile_id, object_type, permission)
        self._object_permissions[(profile_id, object_type)] = row
        return row

    async def set_field_permission(
        self,
        profile_id: str,
        object_type: str,
        field_name: str,
        permission: FieldPermission,
    ) -> FieldPermission:
        self._require(profile_id)
        row = normalize_field_permission(profile_id, object_type, field_name, permission)
        self._field_permissions[(profile_id, object_type, field_name)] = row
        return row

    # ---- Users ----

    async def assign_profile(self, user_id: str, profile_id: str) -> None:
        self._require(profile_id)
        self._users[user_id] = profile_id

    async def user_profile_id(self, user_id: str) -> Optional[str]:
        return self._users.get(user_id)

    async def count_profile_users(self, profile_id: str) -> int:
        return sum(1 for pid in self._users.values() if pid == profile_id)


class InMemoryRecordSource(RecordSource):
    """Records as ``{table: {record_id: {column: value}}}``."""

    def __init__(self, tables: Optional[Mapping[str, Mapping[str, Mapping[str, Any]]]] = None) -> None:
        self._tables: dict[str, dict[str, dict[str, Any]]] = {
            table: {rid: dict(row) for rid, row in rows.items()} for table, rows in (tables or {}).items()
        }

    def add(self, table: str, record_id: str, **columns: Any) -> None:
        self._tables.setdefault(table, {})[record_id] = dict(columns)

    async def fetch_record(
        self,
        table: str,
        record_id: str,
        columns: Iterable[str],
    ) -> Optional[Mapping[str, Any]]:
        row = self._tables.get(table, {}).get(record_id)
        if row is None:
            return None
        return {column: row.get(column) for column in columns}


__all__ = [
    "InMemoryPlanFeatureStore",
    "InMemoryProfileStore",
    "InMemoryRecordSource",
]
