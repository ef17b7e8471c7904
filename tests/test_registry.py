"""Tests for object type keys and the ObjectTypeRegistry."""

from __future__ import annotations

import logging

import pytest

from propguard.exceptions import ConfigurationError, InvalidObjectTypeError, UnknownObjectTypeError
from propguard.permissions.constants import ObjectTypes
from propguard.permissions.registry import (
    BUILTIN_DEFINITIONS,
    ObjectDefinition,
    ObjectTypeRegistry,
    ParentLink,
    validate_object_type_key,
)


class TestObjectTypeKeys:
    @pytest.mark.parametrize("key", ["Property", "JournalEntry", "custom_unit_type", "A", "X" * 64])
    def test_valid_keys(self, key: str) -> None:
        assert validate_object_type_key(key) == key

    @pytest.mark.parametrize("key", ["", "1Lease", "Lease Item", "lease-item", "X" * 65, "Lease;"])
    def test_invalid_keys(self, key: str) -> None:
        with pytest.raises(InvalidObjectTypeError):
            validate_object_type_key(key)

    def test_definition_validates_key(self) -> None:
        with pytest.raises(InvalidObjectTypeError):
            ObjectDefinition(object_key="bad key")

    def test_display_name_defaults_to_key(self) -> None:
        assert ObjectDefinition(object_key="Inspection").display_name == "Inspection"


class TestBuiltins:
    def test_every_builtin_registered(self) -> None:
        registry = ObjectTypeRegistry()
        assert set(registry.keys()) == set(ObjectTypes.ALL)
        assert len(registry) == len(BUILTIN_DEFINITIONS) == 13

    def test_builtins_are_system(self) -> None:
        assert all(d.is_system for d in BUILTIN_DEFINITIONS)

    @pytest.mark.parametrize(
        "object_type, field",
        [
            ("Property", "created_by"),
            ("Lease", "created_by"),
            ("Task", "assigned_to"),
            ("Message", "sender_id"),
            ("Activity", "user_id"),
            ("Profile", None),
            ("User", None),
            ("Organization", None),
        ],
    )
    def test_ownership_fields(self, object_type: str, field: str | None) -> None:
        assert ObjectTypeRegistry().require(object_type).ownership_field == field

    def test_dependent_types(self) -> None:
        registry = ObjectTypeRegistry()
        assert [p.object_type for p in registry.require("Unit").parents] == ["Property"]
        assert [p.object_type for p in registry.require("Lease").parents] == ["Unit"]
        assert [p.object_type for p in registry.require("Payment").parents] == ["Lease", "Tenant"]
        assert registry.require("Property").is_dependent is False


class TestRegistration:
    def test_register_dynamic_type(self) -> None:
        registry = ObjectTypeRegistry()
        registry.register(
            ObjectDefinition(
                object_key="Inspection",
                table="inspections",
                parents=(ParentLink(foreign_key="unit_id", object_type="Unit"),),
            )
        )
        assert "Inspection" in registry
        assert registry.require("Inspection").table == "inspections"

    def test_cannot_redefine_builtin(self) -> None:
        with pytest.raises(ConfigurationError):
            ObjectTypeRegistry().register(ObjectDefinition(object_key="Lease", table="my_leases"))

    def test_parent_must_be_registered(self) -> None:
        with pytest.raises(ConfigurationError):
            ObjectTypeRegistry().register(
                ObjectDefinition(
                    object_key="Inspection",
                    table="inspections",
                    parents=(ParentLink(foreign_key="room_id", object_type="Room"),),
                )
            )

    def test_missing_table_warns(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="propguard.permissions.registry"):
            ObjectTypeRegistry().register(ObjectDefinition(object_key="Note"))
        assert "without a table" in caplog.text

    def test_unregister(self) -> None:
        registry = ObjectTypeRegistry()
        registry.register(ObjectDefinition(object_key="Note", table="notes"))
        registry.unregister("Note")
        assert "Note" not in registry
        with pytest.raises(ConfigurationError):
            registry.unregister("Property")

    def test_inactive_definitions_hidden(self) -> None:
        registry = ObjectTypeRegistry()
        registry.register(ObjectDefinition(object_key="Note", table="notes", is_active=False))
        assert registry.get("Note") is None
        assert "Note" not in registry.keys()
        with pytest.raises(UnknownObjectTypeError):
            registry.require("Note")
