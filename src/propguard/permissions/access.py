"""Access-level analysis for profiles.

Derives a summary AccessLevel per object type from the permission
booleans and aggregates them per profile. Used by the UI to render
badges and by reporting; enforcement always goes through the checker.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from .constants import ACCESS_LEVEL_HIERARCHY, AccessLevel
from .models import ObjectPermission, Profile, ProfileAccessSummary

if TYPE_CHECKING:
    from ..stores.base import ProfileStore

logger = logging.getLogger(__name__)


def derive_access_level(permission: ObjectPermission) -> AccessLevel:
    """Summary level of an object permission, computed from its booleans.

    Rules, first match wins:
    1. ``All``: create, edit, delete and view-all are all granted
    2. ``ReadWrite``: create or edit, without delete
    3. ``Read``: read, including rows whose delete grant falls short of ``All``
    4. ``None``: no read

    The stored ``access_level`` column is ignored.

    Example::

        derive_access_level(ObjectPermission(can_read=True))                   # Read
        derive_access_level(ObjectPermission(can_read=True, can_edit=True))    # ReadWrite
    """
    return permission.derived_access_level()


def has_access_level_or_higher(level: AccessLevel | str, minimum: AccessLevel | str) -> bool:
    """True if ``level`` is at least as permissive as ``minimum``.

    Uses the total order ``None < Read < ReadWrite < All``.
    """
    return AccessLevel(level).rank >= AccessLevel(minimum).rank


def most_permissive_level(levels: Iterable[AccessLevel | str]) -> AccessLevel:
    """Highest level in ``levels``; ``None`` for an empty input."""
    best = AccessLevel.NONE
    for level in levels:
        level = AccessLevel(level)
        if level.rank > best.rank:
            best = level
    return best


_DESCRIPTIONS = {
    AccessLevel.NONE: "No access",
    AccessLevel.READ: "Read only",
    AccessLevel.READ_WRITE: "Read and write",
    AccessLevel.ALL: "Full access (read, write, delete)",
}


def access_level_description(level: AccessLevel | str) -> str:
    try:
        return _DESCRIPTIONS[AccessLevel(level)]
    except ValueError:
        return "Unknown"


def summarize_permissions(profile: Profile, permissions: list[ObjectPermission]) -> ProfileAccessSummary:
    """Build a ProfileAccessSummary from already-loaded rows."""
    object_levels: dict[str, AccessLevel] = {}
    for permission in permissions:
        derived = derive_access_level(permission)
        if derived is not permission.access_level:
            logger.debug(
                "Stored access level %s for %s on profile %s differs from derived %s",
                permission.access_level.value,
                permission.object_type,
                profile.id,
                derived.value,
            )
        object_levels[permission.object_type] = derived

    return ProfileAccessSummary(
        profile_id=profile.id,
        profile_name=profile.name,
        overall_access_level=most_permissive_level(object_levels.values()),
        object_access_levels=object_levels,
        can_create_any=any(p.can_create for p in permissions),
        can_edit_any=any(p.can_edit for p in permissions),
        can_delete_any=any(p.can_delete for p in permissions),
        can_view_all_any=any(p.can_view_all for p in permissions),
        total_objects=len(permissions),
        accessible_objects=sum(1 for p in permissions if p.can_read),
        permissions=list(permissions),
    )


async def analyze_profile_access_level(store: "ProfileStore", profile_id: str) -> Optional[ProfileAccessSummary]:
    """Summarize the access of a profile across all its object types.

    Returns None when the profile does not exist.
    """
    profile = await store.get_profile(profile_id)
    if profile is None:
        return None
    permissions = await store.object_permissions(profile_id)
    return summarize_permissions(profile, permissions)


async def user_profile_access_level(store: "ProfileStore", user_id: str) -> Optional[ProfileAccessSummary]:
    """Summary for the profile assigned to ``user_id`` (None when unassigned)."""
    profile_id = await store.user_profile_id(user_id)
    if profile_id is None:
        return None
    return await analyze_profile_access_level(store, profile_id)


async def has_minimum_access_level(
    store: "ProfileStore",
    profile_id: str,
    object_type: str,
    minimum: AccessLevel | str,
) -> bool:
    """True if the profile's level on ``object_type`` is at least ``minimum``.

    A missing permission row fails closed.
    """
    for permission in await store.object_permissions(profile_id):
        if permission.object_type == object_type:
            return has_access_level_or_higher(derive_access_level(permission), minimum)
    return False


__all__ = [
    "ACCESS_LEVEL_HIERARCHY",
    "access_level_description",
    "analyze_profile_access_level",
    "derive_access_level",
    "has_access_level_or_higher",
    "has_minimum_access_level",
    "most_permissive_level",
    "summarize_permissions",
    "user_profile_access_level",
]
