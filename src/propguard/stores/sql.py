"""SQLAlchemy asyncio implementations of the store contracts.

Usage:
    config = load_config_from_env()
    engine = create_engine_from_config(config)
    sessions = session_factory(engine)

    profiles = SqlProfileStore(sessions)
    plans = SqlPlanFeatureStore(sessions)
    records = SqlRecordSource(sessions)

Every SQLAlchemy failure is re-raised as StorageError (or
DatabaseConnectionError when the connection was lost) so the checker can
turn it into a fail-closed denial.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable, Mapping, Optional

from sqlalchemy import column, delete, func, or_, select, table
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..config import GuardConfig
from ..exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    DuplicateProfileError,
    ProfileInUseError,
    ProfileNotFoundError,
    StorageError,
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
from .tables import Base, FieldPermissionRow, ObjectPermissionRow, PlanFeatureRow, ProfileRow, UserRow

logger = logging.getLogger(__name__)


# ---- Engine helpers ---------------------------------------------------------


def create_engine_from_config(config: GuardConfig) -> AsyncEngine:
    """Build the async engine described by ``config.database_url``."""
    if not config.database_url:
        raise ConfigurationError("DATABASE_URL is not configured")
    return create_async_engine(
        config.database_url,
        echo=config.database_echo,
        pool_pre_ping=True,
    )


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the permission tables (tests and local bootstrap only)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def _storage_errors(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.error("Database connection lost during %s: %s", operation, exc)
            raise DatabaseConnectionError(f"Database connection lost during {operation}") from exc
        logger.error("Database error during %s: %s", operation, exc)
        raise StorageError(f"Database error during {operation}", operation=operation) from exc
    except SQLAlchemyError as exc:
        logger.error("Database error during %s: %s", operation, exc)
        raise StorageError(f"Database error during {operation}", operation=operation) from exc


class _SqlStore:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions


# ---- Plan features ----------------------------------------------------------


class SqlPlanFeatureStore(_SqlStore, PlanFeatureStore):
    async def enabled_features(self, plan_name: str) -> frozenset[str]:
        async with _storage_errors("enabled_features"):
            async with self._sessions() as session:
                result = await session.execute(
                    select(PlanFeatureRow.feature_key).where(
                        PlanFeatureRow.plan_name == plan_name,
                        PlanFeatureRow.is_enabled.is_(True),
                    )
                )
                return frozenset(result.scalars().all())

    async def plan_features(self, plan_name: str) -> list[PlanFeature]:
        async with _storage_errors("plan_features"):
            async with self._sessions() as session:
                result = await session.execute(
                    select(PlanFeatureRow)
                    .where(PlanFeatureRow.plan_name == plan_name)
                    .order_by(PlanFeatureRow.feature_key)
                )
                return [PlanFeature.model_validate(row, from_attributes=True) for row in result.scalars()]

    async def set_plan_feature(
        self,
        plan_name: str,
        feature_key: str,
        is_enabled: bool,
        limits: Optional[dict[str, Any]] = None,
    ) -> PlanFeature:
        async with _storage_errors("set_plan_feature"):
            async with self._sessions() as session, session.begin():
                row = await session.scalar(
                    select(PlanFeatureRow).where(
                        PlanFeatureRow.plan_name == plan_name,
                        PlanFeatureRow.feature_key == feature_key,
                    )
                )
                if row is None:
                    row = PlanFeatureRow(plan_name=plan_name, feature_key=feature_key)
                    session.add(row)
                row.is_enabled = is_enabled
                row.limits = limits
        return PlanFeature(plan_name=plan_name, feature_key=feature_key, is_enabled=is_enabled, limits=limits)


# ---- Profiles ---------------------------------------------------------------


def _profile(row: ProfileRow) -> Profile:
    return Profile.model_validate(row, from_attributes=True)


def _object_permission(row: ObjectPermissionRow) -> ObjectPermission:
    return ObjectPermission.model_validate(row, from_attributes=True)


def _field_permission(row: FieldPermissionRow) -> FieldPermission:
    return FieldPermission.model_validate(row, from_attributes=True)


def _same_organization(organization_id: Optional[str]):
    if organization_id is None:
        return ProfileRow.organization_id.is_(None)
    return ProfileRow.organization_id == organization_id


class SqlProfileStore(_SqlStore, ProfileStore):
    async def _require(self, session: AsyncSession, profile_id: str) -> ProfileRow:
        row = await session.get(ProfileRow, profile_id)
        if row is None:
            raise ProfileNotFoundError(f"Profile {profile_id} not found", profile_id=profile_id)
        return row

    # ---- Profiles ----

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        async with _storage_errors("get_profile"):
            async with self._sessions() as session:
                row = await session.get(ProfileRow, profile_id)
                return _profile(row) if row is not None else None

    async def find_profile(self, organization_id: Optional[str], name: str) -> Optional[Profile]:
        async with _storage_errors("find_profile"):
            async with self._sessions() as session:
                row = await session.scalar(
                    select(ProfileRow).where(_same_organization(organization_id), ProfileRow.name == name)
                )
                return _profile(row) if row is not None else None

    async def list_profiles(
        self,
        organization_id: Optional[str] = None,
        include_global: bool = True,
    ) -> list[Profile]:
        conditions = []
        if include_global:
            conditions.append(ProfileRow.organization_id.is_(None))
        if organization_id is not None:
            conditions.append(ProfileRow.organization_id == organization_id)
        if not conditions:
            return []
        stmt = select(ProfileRow).where(or_(*conditions))
        async with _storage_errors("list_profiles"):
            async with self._sessions() as session:
                result = await session.execute(stmt)
                return sort_profiles(_profile(row) for row in result.scalars())

    async def create_profile(
        self,
        name: str,
        organization_id: Optional[str] = None,
        description: Optional[str] = None,
        is_system: bool = False,
    ) -> Profile:
        # NULL organization ids never collide in a unique index, so check first
        if await self.find_profile(organization_id, name) is not None:
            raise DuplicateProfileError(
                f"Profile {name!r} already exists", organization_id=organization_id, name=name
            )
        row = ProfileRow(
            organization_id=organization_id,
            name=name,
            description=description,
            is_system=is_system,
            is_global=organization_id is None,
            is_active=True,
        )
        try:
            async with _storage_errors("create_profile"):
                async with self._sessions() as session, session.begin():
                    session.add(row)
        except StorageError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise DuplicateProfileError(f"Profile {name!r} already exists", name=name) from exc.__cause__
            raise
        return _profile(row)

    async def update_profile(
        self,
        profile_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Profile:
        async with _storage_errors("update_profile"):
            async with self._sessions() as session, session.begin():
                row = await self._require(session, profile_id)
                if name is not None and name != row.name:
                    if row.is_system:
                        raise SystemProfileProtectedError(
                            f"System profile {row.name!r} cannot be renamed", profile_id=profile_id
                        )
                    clash = await session.scalar(
                        select(ProfileRow.id).where(_same_organization(row.organization_id), ProfileRow.name == name)
                    )
                    if clash is not None:
                        raise DuplicateProfileError(f"Profile {name!r} already exists", name=name)
                    row.name = name
                if description is not None:
                    row.description = description
                if is_active is not None:
                    row.is_active = is_active
                row.updated_at = datetime.now(timezone.utc)
            return _profile(row)

    async def delete_profile(self, profile_id: str) -> None:
        async with _storage_errors("delete_profile"):
            async with self._sessions() as session, session.begin():
                row = await self._require(session, profile_id)
                if row.is_system:
                    raise SystemProfileProtectedError(
                        f"System profile {row.name!r} cannot be deleted", profile_id=profile_id
                    )
                users = await session.scalar(
                    select(func.count()).select_from(UserRow).where(UserRow.profile_id == profile_id)
                )
                if users:
                    raise ProfileInUseError(
                        f"Profile {row.name!r} is assigned to {users} user(s)", profile_id=profile_id, users=users
                    )
                await session.execute(delete(FieldPermissionRow).where(FieldPermissionRow.profile_id == profile_id))
                await session.execute(delete(ObjectPermissionRow).where(ObjectPermissionRow.profile_id == profile_id))
                await session.delete(row)
        logger.info("Deleted profile %s", profile_id)

    # ---- Permission rows ----

    async def object_permissions(self, profile_id: str) -> list[ObjectPermission]:
        async with _storage_errors("object_permissions"):
            async with self._sessions() as session:
                result = await session.execute(
                    select(ObjectPermissionRow)
                    .where(ObjectPermissionRow.profile_id == profile_id)
                    .order_by(ObjectPermissionRow.object_type)
                )
                return [_object_permission(row) for row in result.scalars()]

    async def field_permissions(
        self,
        profile_id: str,
        object_type: Optional[str] = None,
    ) -> list[FieldPermission]:
        stmt = select(FieldPermissionRow).where(FieldPermissionRow.profile_id == profile_id)
        if object_type is not None:
            stmt = stmt.where(FieldPermissionRow.object_type == object_type)
        async with _storage_errors("field_permissions"):
            async with self._sessions() as session:
                result = await session.execute(stmt.order_by(FieldPermissionRow.object_type, FieldPermissionRow.field_name))
                return [_field_permission(row) for row in result.scalars()]

    async def set_object_permission(
        self,
        profile_id: str,
        object_type: str,
        permission: ObjectPermission,
    ) -> ObjectPermission:
        normalized = normalize_object_permission(profile_id, object_type, permission)
        async with _storage_errors("set_object_permission"):
            async with self._sessions() as session, session.begin():
                await self._require(session, profile_id)
                row = await session.scalar(
                    select(ObjectPermissionRow).where(
                        ObjectPermissionRow.profile_id == profile_id,
                        ObjectPermissionRow.object_type == object_type,
                    )
                )
                if row is None:
                    row = ObjectPermissionRow(profile_id=profile_id, object_type=object_type)
                    session.add(row)
                row.access_level = normalized.access_level.value
                row.can_create = normalized.can_create
                row.can_read = normalized.can_read
                row.can_edit = normalized.can_edit
                row.can_delete = normalized.can_delete
                row.can_view_all = normalized.can_view_all
        return normalized

    async def set_field_permission(
        self,
        profile_id: str,
        object_type: str,
        field_name: str,
        permission: FieldPermission,
    ) -> FieldPermission:
        normalized = normalize_field_permission(profile_id, object_type, field_name, permission)
        async with _storage_errors("set_field_permission"):
            async with self._sessions() as session, session.begin():
                await self._require(session, profile_id)
                row = await session.scalar(
                    select(FieldPermissionRow).where(
                        FieldPermissionRow.profile_id == profile_id,
                        FieldPermissionRow.object_type == object_type,
                        FieldPermissionRow.field_name == field_name,
                    )
                )
                if row is None:
                    row = FieldPermissionRow(profile_id=profile_id, object_type=object_type, field_name=field_name)
                    session.add(row)
                row.access_level = normalized.access_level.value
                row.can_read = normalized.can_read
                row.can_edit = normalized.can_edit
                row.is_sensitive = normalized.is_sensitive
        return normalized

    # ---- Users ----

    async def assign_profile(self, user_id: str, profile_id: str) -> None:
        async with _storage_errors("assign_profile"):
            async with self._sessions() as session, session.begin():
                await self._require(session, profile_id)
                user = await session.get(UserRow, user_id)
                if user is None:
                    session.add(UserRow(id=user_id, profile_id=profile_id))
                else:
                    user.profile_id = profile_id

    async def user_profile_id(self, user_id: str) -> Optional[str]:
        async with _storage_errors("user_profile_id"):
            async with self._sessions() as session:
                return await session.scalar(select(UserRow.profile_id).where(UserRow.id == user_id))

    async def count_profile_users(self, profile_id: str) -> int:
        async with _storage_errors("count_profile_users"):
            async with self._sessions() as session:
                count = await session.scalar(
                    select(func.count()).select_from(UserRow).where(UserRow.profile_id == profile_id)
                )
                return int(count or 0)


# ---- Domain records ---------------------------------------------------------


class SqlRecordSource(_SqlStore, RecordSource):
    """Reads ownership columns from arbitrary domain tables by primary key ``id``."""

    async def fetch_record(
        self,
        table_name: str,
        record_id: str,
        columns: Iterable[str],
    ) -> Optional[Mapping[str, Any]]:
        names = list(dict.fromkeys(columns)) or ["id"]
        lookup = table(table_name, *(column(name) for name in dict.fromkeys(["id", *names])))
        stmt = select(*(lookup.c[name] for name in names)).where(lookup.c.id == record_id)
        async with _storage_errors(f"fetch_record({table_name})"):
            async with self._sessions() as session:
                result = await session.execute(stmt)
                row = result.mappings().first()
                return dict(row) if row is not None else None


__all__ = [
    "SqlPlanFeatureStore",
    "SqlProfileStore",
    "SqlRecordSource",
    "create_engine_from_config",
    "create_schema",
    "session_factory",
]
