"""Field-level security helpers.

Two consumers interpret a missing FieldPermission row differently:

- ``filter_fields()`` shapes records returned to a caller who already
  passed the object-level check. A field with no row is kept.
- ``decide_field_access()`` is the level-4 decision of the checker. A
  field with no row is settled by a FieldAbsencePolicy, by default the
  object-level permission.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from ..config import DEFAULT_ALWAYS_VISIBLE_FIELDS, FieldAbsencePolicy
from .constants import Action
from .models import FieldPermission, ObjectPermission


def field_permission_index(
    field_permissions: Iterable[FieldPermission],
    object_type: Optional[str] = None,
) -> dict[str, FieldPermission]:
    """Index rows by field name, keeping only ``object_type`` when given."""
    return {
        p.field_name: p
        for p in field_permissions
        if object_type is None or p.object_type == object_type
    }


def filter_fields(
    record: Mapping[str, Any],
    field_permissions: Iterable[FieldPermission],
    object_type: Optional[str] = None,
    always_visible: Iterable[str] = DEFAULT_ALWAYS_VISIBLE_FIELDS,
) -> dict[str, Any]:
    """Project ``record`` down to the fields the caller may read.

    A field is kept when:
    1. it is an identity/audit column (``id``, ``created_at``, ``updated_at``)
    2. no FieldPermission row matches it
    3. its row has ``can_read``

    Args:
        record: The row as a mapping of column name to value.
        field_permissions: Field rows of the caller's profile.
        object_type: When given, rows of other object types are ignored.
        always_visible: Columns kept regardless of any row.

    Example::

        perms = [FieldPermission(object_type="Tenant", field_name="bankDetails")]
        filter_fields({"id": 1, "name": "Awa", "bankDetails": "..."}, perms, "Tenant")
        # {"id": 1, "name": "Awa"}
    """
    index = field_permission_index(field_permissions, object_type)
    visible = frozenset(always_visible)
    filtered: dict[str, Any] = {}
    for key, value in record.items():
        permission = index.get(key)
        if key in visible or permission is None or permission.can_read:
            filtered[key] = value
    return filtered


def readable_fields(
    field_names: Iterable[str],
    field_permissions: Iterable[FieldPermission],
    object_type: Optional[str] = None,
    always_visible: Iterable[str] = DEFAULT_ALWAYS_VISIBLE_FIELDS,
) -> list[str]:
    """Names from ``field_names`` that ``filter_fields`` would keep, in order."""
    probe = dict.fromkeys(field_names)
    return list(filter_fields(probe, field_permissions, object_type, always_visible))


def filter_records(
    records: Iterable[Mapping[str, Any]],
    field_permissions: Iterable[FieldPermission],
    object_type: Optional[str] = None,
    always_visible: Iterable[str] = DEFAULT_ALWAYS_VISIBLE_FIELDS,
) -> list[dict[str, Any]]:
    permissions = list(field_permissions)
    return [filter_fields(r, permissions, object_type, always_visible) for r in records]


def decide_field_access(
    field_permission: Optional[FieldPermission],
    object_permission: Optional[ObjectPermission],
    action: Action,
    policy: FieldAbsencePolicy = FieldAbsencePolicy.OBJECT,
) -> tuple[bool, bool]:
    """Level-4 decision for one field.

    Returns:
        ``(allowed, explicit)`` where ``explicit`` is False when no field
        row existed and ``policy`` decided.
    """
    if action not in (Action.READ, Action.EDIT):
        return True, False

    if field_permission is not None:
        allowed = field_permission.can_read if action is Action.READ else field_permission.can_edit
        return allowed, True

    if policy is FieldAbsencePolicy.ALLOW:
        return True, False
    if policy is FieldAbsencePolicy.DENY:
        return False, False
    # OBJECT: inherit the object-level grant, closed when that row is missing too
    if object_permission is None:
        return False, False
    return object_permission.allows(action), False


__all__ = [
    "decide_field_access",
    "field_permission_index",
    "filter_fields",
    "filter_records",
    "readable_fields",
]
