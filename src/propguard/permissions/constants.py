"""Vocabulary of the access-control engine.

Provides:
- ``ObjectTypes``: built-in object type keys.
- ``Action``: operations a caller can request.
- ``SecurityLevel``: the four check levels, in evaluation order.
- ``AccessLevel`` / ``FieldAccessLevel``: summary levels and their order.
- ``DenialCode``: machine-readable reason for a denied check.
"""

from __future__ import annotations

from enum import Enum


class ObjectTypes:
    """Built-in object type keys.

    Object types are open-ended strings; these are the reserved subset
    that every deployment knows about. Tenant-defined types are added to
    the :class:`~propguard.permissions.registry.ObjectTypeRegistry`.
    """

    PROPERTY = "Property"
    UNIT = "Unit"
    TENANT = "Tenant"
    LEASE = "Lease"
    PAYMENT = "Payment"
    TASK = "Task"
    MESSAGE = "Message"
    JOURNAL_ENTRY = "JournalEntry"
    USER = "User"
    ORGANIZATION = "Organization"
    PROFILE = "Profile"
    REPORT = "Report"
    ACTIVITY = "Activity"

    ALL = (
        "Property",
        "Unit",
        "Tenant",
        "Lease",
        "Payment",
        "Task",
        "Message",
        "JournalEntry",
        "User",
        "Organization",
        "Profile",
        "Report",
        "Activity",
    )


class Action(str, Enum):
    """Operation requested by the caller."""

    READ = "read"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    VIEW_ALL = "viewAll"

    @property
    def is_field_action(self) -> bool:
        """Only read and edit are meaningful at field level."""
        return self in (Action.READ, Action.EDIT)


class SecurityLevel(str, Enum):
    """Check levels, in evaluation order."""

    PLAN = "plan"
    PROFILE = "profile"
    OBJECT = "object"
    FIELD = "field"


class AccessLevel(str, Enum):
    """Object access summary. Totally ordered: NONE < READ < READ_WRITE < ALL."""

    NONE = "None"
    READ = "Read"
    READ_WRITE = "ReadWrite"
    ALL = "All"

    @property
    def rank(self) -> int:
        return ACCESS_LEVEL_HIERARCHY.index(self)


# Lowest first
ACCESS_LEVEL_HIERARCHY = (
    AccessLevel.NONE,
    AccessLevel.READ,
    AccessLevel.READ_WRITE,
    AccessLevel.ALL,
)


class FieldAccessLevel(str, Enum):
    """Field access summary."""

    NONE = "None"
    READ = "Read"
    READ_WRITE = "ReadWrite"


class DenialCode(str, Enum):
    """Why a check was denied. Stable across releases."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    FEATURE_DISABLED = "FEATURE_DISABLED"
    PROFILE_MISSING = "PROFILE_MISSING"
    OBJECT_PERMISSION_UNDEFINED = "OBJECT_PERMISSION_UNDEFINED"
    ACTION_NOT_PERMITTED = "ACTION_NOT_PERMITTED"
    OWNERSHIP_VIOLATION = "OWNERSHIP_VIOLATION"
    OBJECT_NOT_FOUND = "OBJECT_NOT_FOUND"
    FIELD_NOT_PERMITTED = "FIELD_NOT_PERMITTED"
    LOOKUP_FAILED = "LOOKUP_FAILED"


__all__ = [
    "ACCESS_LEVEL_HIERARCHY",
    "AccessLevel",
    "Action",
    "DenialCode",
    "FieldAccessLevel",
    "ObjectTypes",
    "SecurityLevel",
]
