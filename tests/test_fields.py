"""Tests for field-level filtering and decisions."""

from __future__ import annotations

import pytest

from propguard.config import FieldAbsencePolicy
from propguard.permissions.constants import Action
from propguard.permissions.fields import (
    decide_field_access,
    filter_fields,
    filter_records,
    readable_fields,
)
from propguard.permissions.models import FieldPermission, ObjectPermission

TENANT_FIELDS = [
    FieldPermission(object_type="Tenant", field_name="bankDetails", can_read=False),
    FieldPermission(object_type="Tenant", field_name="email", can_read=True),
    FieldPermission(object_type="Lease", field_name="name", can_read=False),
]


class TestFilterFields:
    def test_drops_unreadable_keeps_unrowed(self) -> None:
        record = {"id": "t-1", "name": "Awa", "email": "a@b.c", "bankDetails": "IBAN"}
        assert filter_fields(record, TENANT_FIELDS, "Tenant") == {"id": "t-1", "name": "Awa", "email": "a@b.c"}

    def test_identity_columns_always_kept(self) -> None:
        perms = [FieldPermission(object_type="Tenant", field_name=f) for f in ("id", "created_at", "updated_at")]
        record = {"id": 1, "created_at": "x", "updated_at": "y"}
        assert filter_fields(record, perms, "Tenant") == record

    def test_other_object_types_ignored(self) -> None:
        """A Lease row hiding ``name`` does not affect Tenant records."""
        assert "name" in filter_fields({"name": "Awa"}, TENANT_FIELDS, "Tenant")

    def test_without_object_type_all_rows_apply(self) -> None:
        assert filter_fields({"bankDetails": "IBAN", "email": "e"}, TENANT_FIELDS[:2]) == {"email": "e"}

    def test_empty_permissions_keep_everything(self) -> None:
        record = {"id": 1, "rent": 900}
        assert filter_fields(record, [], "Lease") == record

    def test_readable_fields_preserves_order(self) -> None:
        names = ["bankDetails", "name", "id", "email"]
        assert readable_fields(names, TENANT_FIELDS, "Tenant") == ["name", "id", "email"]

    def test_filter_records(self) -> None:
        records = [{"id": 1, "bankDetails": "a"}, {"id": 2, "bankDetails": "b"}]
        assert filter_records(records, iter(TENANT_FIELDS), "Tenant") == [{"id": 1}, {"id": 2}]


class TestDecideFieldAccess:
    READ_ONLY = ObjectPermission(object_type="Tenant", can_read=True)

    def test_explicit_row_wins(self) -> None:
        row = FieldPermission(field_name="email", can_read=True, can_edit=False)
        assert decide_field_access(row, self.READ_ONLY, Action.READ) == (True, True)
        assert decide_field_access(row, self.READ_ONLY, Action.EDIT) == (False, True)

    @pytest.mark.parametrize(
        "policy, action, expected",
        [
            (FieldAbsencePolicy.OBJECT, Action.READ, True),
            (FieldAbsencePolicy.OBJECT, Action.EDIT, False),
            (FieldAbsencePolicy.ALLOW, Action.EDIT, True),
            (FieldAbsencePolicy.DENY, Action.READ, False),
        ],
    )
    def test_absence_policies(self, policy, action, expected) -> None:
        assert decide_field_access(None, self.READ_ONLY, action, policy) == (expected, False)

    def test_object_policy_without_object_row_denies(self) -> None:
        assert decide_field_access(None, None, Action.READ) == (False, False)

    def test_non_field_actions_pass(self) -> None:
        assert decide_field_access(None, None, Action.DELETE, FieldAbsencePolicy.DENY) == (True, False)
