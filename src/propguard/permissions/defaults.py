"""Starter profiles seeded for every new organization.

Provides:
- ``DefaultProfile``: name, description and object permission matrix.
- ``DEFAULT_PROFILES``: Owner, Administrator, Accountant, Agent, Viewer.
- ``default_profile(name)``: lookup by name.

Seeding upserts by (organization, name) and by (profile, object type),
so running it twice leaves the same rows.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from .constants import ObjectTypes
from .models import ObjectPermission


def _grant(create: bool, read: bool, edit: bool, delete: bool, view_all: bool) -> ObjectPermission:
    permission = ObjectPermission(
        can_create=create,
        can_read=read,
        can_edit=edit,
        can_delete=delete,
        can_view_all=view_all,
    )
    return permission.model_copy(update={"access_level": permission.derived_access_level()})


FULL = _grant(True, True, True, True, True)
READ_WRITE = _grant(True, True, True, False, True)
READ_ALL = _grant(False, True, False, False, True)
READ_OWN = _grant(False, True, False, False, False)
NO_ACCESS = _grant(False, False, False, False, False)


class DefaultProfile(NamedTuple):
    name: str
    description: str
    permissions: dict[str, ObjectPermission]


_OPERATIONAL = (
    ObjectTypes.PROPERTY,
    ObjectTypes.UNIT,
    ObjectTypes.TENANT,
    ObjectTypes.LEASE,
    ObjectTypes.PAYMENT,
    ObjectTypes.TASK,
    ObjectTypes.MESSAGE,
    ObjectTypes.JOURNAL_ENTRY,
)

OWNER = DefaultProfile(
    name="Owner",
    description="Full access to the organization's portfolio",
    permissions={
        **{t: FULL for t in _OPERATIONAL},
        ObjectTypes.REPORT: FULL,
        ObjectTypes.ACTIVITY: READ_ALL,
        ObjectTypes.USER: READ_OWN,
        ObjectTypes.ORGANIZATION: READ_OWN,
        ObjectTypes.PROFILE: READ_OWN,
    },
)

ADMINISTRATOR = DefaultProfile(
    name="Administrator",
    description="Extended access including users and profiles",
    permissions={
        **{t: FULL for t in _OPERATIONAL},
        ObjectTypes.REPORT: FULL,
        ObjectTypes.ACTIVITY: READ_ALL,
        ObjectTypes.USER: FULL,
        ObjectTypes.ORGANIZATION: _grant(False, True, True, False, True),
        ObjectTypes.PROFILE: FULL,
    },
)

ACCOUNTANT = DefaultProfile(
    name="Accountant",
    description="Access to financial data",
    permissions={
        ObjectTypes.PROPERTY: READ_ALL,
        ObjectTypes.UNIT: READ_ALL,
        ObjectTypes.TENANT: READ_ALL,
        ObjectTypes.LEASE: READ_ALL,
        ObjectTypes.PAYMENT: FULL,
        ObjectTypes.TASK: READ_WRITE,
        ObjectTypes.MESSAGE: _grant(True, True, False, False, True),
        ObjectTypes.JOURNAL_ENTRY: FULL,
        ObjectTypes.REPORT: READ_WRITE,
        ObjectTypes.ACTIVITY: READ_ALL,
        ObjectTypes.USER: NO_ACCESS,
        ObjectTypes.ORGANIZATION: READ_OWN,
        ObjectTypes.PROFILE: NO_ACCESS,
    },
)

AGENT = DefaultProfile(
    name="Agent",
    description="Day-to-day operational access",
    permissions={
        ObjectTypes.PROPERTY: READ_WRITE,
        ObjectTypes.UNIT: READ_WRITE,
        ObjectTypes.TENANT: READ_WRITE,
        ObjectTypes.LEASE: READ_WRITE,
        ObjectTypes.PAYMENT: READ_WRITE,
        ObjectTypes.TASK: READ_WRITE,
        ObjectTypes.MESSAGE: FULL,
        ObjectTypes.JOURNAL_ENTRY: READ_ALL,
        ObjectTypes.REPORT: READ_ALL,
        ObjectTypes.ACTIVITY: READ_OWN,
        ObjectTypes.USER: NO_ACCESS,
        ObjectTypes.ORGANIZATION: READ_OWN,
        ObjectTypes.PROFILE: NO_ACCESS,
    },
)

VIEWER = DefaultProfile(
    name="Viewer",
    description="Read-only access",
    permissions={
        **{t: READ_ALL for t in _OPERATIONAL},
        ObjectTypes.REPORT: READ_ALL,
        ObjectTypes.ACTIVITY: NO_ACCESS,
        ObjectTypes.USER: NO_ACCESS,
        ObjectTypes.ORGANIZATION: READ_OWN,
        ObjectTypes.PROFILE: NO_ACCESS,
    },
)

DEFAULT_PROFILES: tuple[DefaultProfile, ...] = (OWNER, ADMINISTRATOR, ACCOUNTANT, AGENT, VIEWER)


def default_profile(name: str) -> Optional[DefaultProfile]:
    for profile in DEFAULT_PROFILES:
        if profile.name == name:
            return profile
    return None


__all__ = [
    "ACCOUNTANT",
    "ADMINISTRATOR",
    "AGENT",
    "DEFAULT_PROFILES",
    "DefaultProfile",
    "OWNER",
    "VIEWER",
    "default_profile",
]
