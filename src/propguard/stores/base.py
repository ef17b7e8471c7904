"""Storage contracts used by the checker and the analysis helpers.

Three async collaborators:
- PlanFeatureStore: feature switches per subscription plan
- ProfileStore: profiles, their permission rows and user assignment
- RecordSource: read-only lookup of domain records for ownership

Implementations live in ``propguard.stores.memory`` and
``propguard.stores.sql``. Both normalize permission rows the same way
through ``normalize_object_permission`` / ``normalize_field_permission``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from ..permissions.defaults import DEFAULT_PROFILES
from ..permissions.models import FieldPermission, ObjectPermission, PlanFeature, Profile
from ..permissions.registry import validate_object_type_key

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def normalize_object_permission(
    profile_id: str,
    object_type: str,
    permission: ObjectPermission,
) -> ObjectPermission:
    """Bind a permission to its key and recompute ``access_level``.

    A supplied level that disagrees with the booleans is logged and
    replaced; the booleans always win.
    """
    validate_object_type_key(object_type)
    derived = permission.derived_access_level()
    if "access_level" in permission.model_fields_set and permission.access_level is not derived:
        logger.warning(
            "Access level %s for %s on profile %s contradicts its flags; storing %s",
            permission.access_level.value,
            object_type,
            profile_id,
            derived.value,
        )
    return permission.model_copy(
        update={"profile_id": profile_id, "object_type": object_type, "access_level": derived}
    )


def normalize_field_permission(
    profile_id: str,
    object_type: str,
    field_name: str,
    permission: FieldPermission,
) -> FieldPermission:
    validate_object_type_key(object_type)
    derived = permission.derived_access_level()
    if "access_level" in permission.model_fields_set and permission.access_level is not derived:
        logger.warning(
            "Field access level %s for %s.%s on profile %s contradicts its flags; storing %s",
            permission.access_level.value,
            object_type,
            field_name,
            profile_id,
            derived.value,
        )
    return permission.model_copy(
        update={
            "profile_id": profile_id,
            "object_type": object_type,
            "field_name": field_name,
            "access_level": derived,
        }
    )


def sort_profiles(profiles: Iterable[Profile]) -> list[Profile]:
    """Global profiles first, then organization profiles, each by name."""
    return sorted(profiles, key=lambda p: (not p.is_global, p.name))


def _item_feature_key(item: Any) -> Optional[str]:
    if isinstance(item, Mapping):
        return item.get("feature_key")
    return getattr(item, "feature_key", None)


class PlanFeatureStore(ABC):
    """Feature switches per subscription plan.

    A feature with no row for a plan is disabled.
    """

    @abstractmethod
    async def enabled_features(self, plan_name: str) -> frozenset[str]:
        """All enabled feature keys of ``plan_name``, in one query."""
        raise NotImplementedError

    @abstractmethod
    async def plan_features(self, plan_name: str) -> list[PlanFeature]:
        raise NotImplementedError

    @abstractmethod
    async def set_plan_feature(
        self,
        plan_name: str,
        feature_key: str,
        is_enabled: bool,
        limits: Optional[dict[str, Any]] = None,
    ) -> PlanFeature:
        """Upsert by (plan, feature key); last write wins."""
        raise NotImplementedError

    async def is_feature_enabled(self, plan_name: str, feature_key: str) -> bool:
        return feature_key in await self.enabled_features(plan_name)

    async def check_features(self, plan_name: str, feature_keys: Iterable[str]) -> dict[str, bool]:
        """Batch lookup built on a single ``enabled_features`` call."""
        enabled = await self.enabled_features(plan_name)
        return {key: key in enabled for key in feature_keys}

    async def feature_limits(self, plan_name: str, feature_key: str) -> Optional[dict[str, Any]]:
        """Limits of an enabled feature; None when disabled or unlimited."""
        for feature in await self.plan_features(plan_name):
            if feature.feature_key == feature_key and feature.is_enabled:
                return feature.limits
        return None

    async def feature_visibility(self, plan_name: str) -> dict[str, bool]:
        """Every feature row of ``plan_name`` with its switch, for UI listings."""
        return {feature.feature_key: feature.is_enabled for feature in await self.plan_features(plan_name)}

    async def filter_by_features(
        self,
        plan_name: str,
        items: Iterable[_T],
        key: Optional[Callable[[_T], Optional[str]]] = None,
    ) -> list[_T]:
        """Keep the items whose feature is enabled for ``plan_name``.

        Items without a feature key are always kept. By default the key is
        read from a ``feature_key`` mapping entry or attribute.

        Example::

            menu = [{"label": "Leases", "feature_key": "leases"}, {"label": "Home"}]
            await plans.filter_by_features("freemium", menu)   # [{"label": "Home"}]
        """
        feature_of = key or _item_feature_key
        enabled = await self.enabled_features(plan_name)
        return [item for item in items if not feature_of(item) or feature_of(item) in enabled]


class ProfileStore(ABC):
    """Profiles, their permission rows and user assignment.

    Lifecycle rules shared by every backend:
    - (organization, name) is unique; ``organization_id=None`` is global
    - system profiles cannot be renamed or deleted
    - a profile referenced by a user cannot be deleted
    - deleting a profile removes its permission rows
    """

    # ---- Profiles ----

    @abstractmethod
    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        raise NotImplementedError

    @abstractmethod
    async def find_profile(self, organization_id: Optional[str], name: str) -> Optional[Profile]:
        """Profile named ``name`` in ``organization_id`` (None = global)."""
        raise NotImplementedError

    @abstractmethod
    async def list_profiles(
        self,
        organization_id: Optional[str] = None,
        include_global: bool = True,
    ) -> list[Profile]:
        raise NotImplementedError

    @abstractmethod
    async def create_profile(
        self,
        name: str,
        organization_id: Optional[str] = None,
        description: Optional[str] = None,
        is_system: bool = False,
    ) -> Profile:
        """Raises DuplicateProfileError when the name is taken."""
        raise NotImplementedError

    @abstractmethod
    async def update_profile(
        self,
        profile_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Profile:
        raise NotImplementedError

    @abstractmethod
    async def delete_profile(self, profile_id: str) -> None:
        raise NotImplementedError

    # ---- Permission rows ----

    @abstractmethod
    async def object_permissions(self, profile_id: str) -> list[ObjectPermission]:
        raise NotImplementedError

    @abstractmethod
    async def field_permissions(
        self,
        profile_id: str,
        object_type: Optional[str] = None,
    ) -> list[FieldPermission]:
        raise NotImplementedError

    @abstractmethod
    async def set_object_permission(
        self,
        profile_id: str,
        object_type: str,
        permission: ObjectPermission,
    ) -> ObjectPermission:
        """Upsert by (profile, object type); ``access_level`` is recomputed."""
        raise NotImplementedError

    @abstractmethod
    async def set_field_permission(
        self,
        profile_id: str,
        object_type: str,
        field_name: str,
        permission: FieldPermission,
    ) -> FieldPermission:
        """Upsert by (profile, object type, field)."""
        raise NotImplementedError

    # ---- Users ----

    @abstractmethod
    async def assign_profile(self, user_id: str, profile_id: str) -> None:
        """Raises ProfileNotFoundError for an unknown profile."""
        raise NotImplementedError

    @abstractmethod
    async def user_profile_id(self, user_id: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def count_profile_users(self, profile_id: str) -> int:
        raise NotImplementedError

    # ---- Seeding ----

    async def seed_default_profiles(self, organization_id: Optional[str] = None) -> list[Profile]:
        """Create the starter profiles and their permission matrix.

        Upserts by profile name and by object type, so it is safe to run
        on every organization bootstrap. ``organization_id=None`` seeds
        the global profiles.
        """
        seeded: list[Profile] = []
        for default in DEFAULT_PROFILES:
            profile = await self.find_profile(organization_id, default.name)
            if profile is None:
                profile = await self.create_profile(
                    default.name,
                    organization_id=organization_id,
                    description=default.description,
                    is_system=True,
                )
                logger.info("Seeded profile %s for organization %s", default.name, organization_id or "<global>")
            for object_type, permission in default.permissions.items():
                await self.set_object_permission(profile.id, object_type, permission)
            seeded.append(profile)
        return seeded


class RecordSource(ABC):
    """Read-only access to domain records, keyed by table and id."""

    @abstractmethod
    async def fetch_record(
        self,
        table: str,
        record_id: str,
        columns: Iterable[str],
    ) -> Optional[Mapping[str, Any]]:
        """Return the requested ``columns`` of the row, or None when absent."""
        raise NotImplementedError


__all__ = [
    "PlanFeatureStore",
    "ProfileStore",
    "RecordSource",
    "normalize_field_permission",
    "normalize_object_permission",
    "sort_profiles",
]
