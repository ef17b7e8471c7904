"""Object type registry.

Object types are open strings validated against a registry of
definitions. Built-in types are a reserved subset of the registry;
tenant-defined types are registered at runtime with the same record.

Each definition tells the ownership resolver where an instance lives and
who owns it: its table, organization column, ownership column, creator
column and, for dependent types, the parent link(s) to follow.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, Optional

from pydantic import BaseModel, Field

from ..exceptions import ConfigurationError, InvalidObjectTypeError, UnknownObjectTypeError
from .constants import ObjectTypes

logger = logging.getLogger(__name__)

OBJECT_TYPE_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,63}$")


def validate_object_type_key(key: str) -> str:
    """Return ``key`` if it is a valid object type identifier.

    Raises:
        InvalidObjectTypeError: For empty keys, keys with punctuation or
            whitespace, or keys longer than 64 characters.
    """
    if not isinstance(key, str) or not OBJECT_TYPE_PATTERN.match(key):
        raise InvalidObjectTypeError(f"Invalid object type key: {key!r}", object_type=key)
    return key


class ParentLink(BaseModel):
    """Foreign key from a dependent record to its parent."""

    foreign_key: str
    object_type: str


class ObjectDefinition(BaseModel):
    """Where instances of an object type live and who owns them."""

    object_key: str
    display_name: str = ""
    table: Optional[str] = None
    organization_field: Optional[str] = "organization_id"
    ownership_field: Optional[str] = None
    creator_field: Optional[str] = "created_by"
    parents: tuple[ParentLink, ...] = ()
    sensitive_fields: tuple[str, ...] = ()
    is_system: bool = False
    is_active: bool = True
    description: Optional[str] = None
    category: Optional[str] = None

    def model_post_init(self, __context) -> None:
        validate_object_type_key(self.object_key)
        if not self.display_name:
            self.display_name = self.object_key

    @property
    def is_dependent(self) -> bool:
        return bool(self.parents)


def _builtin(key: str, table: str, **kwargs) -> ObjectDefinition:
    return ObjectDefinition(object_key=key, table=table, is_system=True, **kwargs)


BUILTIN_DEFINITIONS: tuple[ObjectDefinition, ...] = (
    _builtin(
        ObjectTypes.PROPERTY,
        "properties",
        ownership_field="created_by",
        sensitive_fields=("purchasePrice", "purchaseDate", "mortgageDetails"),
        category="core",
    ),
    _builtin(
        ObjectTypes.UNIT,
        "units",
        organization_field=None,
        ownership_field="created_by",
        parents=(ParentLink(foreign_key="property_id", object_type=ObjectTypes.PROPERTY),),
        sensitive_fields=("rentAmount", "chargesAmount", "depositAmount"),
        category="core",
    ),
    _builtin(
        ObjectTypes.TENANT,
        "tenants",
        ownership_field="created_by",
        sensitive_fields=("email", "phone", "idNumber", "bankDetails"),
        category="tenants",
    ),
    _builtin(
        ObjectTypes.LEASE,
        "leases",
        organization_field=None,
        ownership_field="created_by",
        parents=(ParentLink(foreign_key="unit_id", object_type=ObjectTypes.UNIT),),
        sensitive_fields=("rentAmount", "depositAmount", "terms"),
        category="leases",
    ),
    _builtin(
        ObjectTypes.PAYMENT,
        "payments",
        ownership_field="created_by",
        parents=(
            ParentLink(foreign_key="lease_id", object_type=ObjectTypes.LEASE),
            ParentLink(foreign_key="tenant_id", object_type=ObjectTypes.TENANT),
        ),
        sensitive_fields=("amount", "paymentMethod", "transactionId", "bankDetails"),
        category="payments",
    ),
    _builtin(
        ObjectTypes.TASK,
        "tasks",
        ownership_field="assigned_to",
        sensitive_fields=("assignedTo", "dueDate", "priority"),
        category="tasks",
    ),
    _builtin(
        ObjectTypes.MESSAGE,
        "messages",
        ownership_field="sender_id",
        creator_field="sender_id",
        sensitive_fields=("content", "attachments"),
        category="messaging",
    ),
    _builtin(
        ObjectTypes.JOURNAL_ENTRY,
        "journal_entries",
        ownership_field="created_by",
        sensitive_fields=("amount", "account", "description"),
        category="accounting",
    ),
    _builtin(
        ObjectTypes.USER,
        "users",
        creator_field=None,
        sensitive_fields=("email", "phone", "role", "salary"),
        category="admin",
    ),
    _builtin(
        ObjectTypes.ORGANIZATION,
        "organizations",
        organization_field="id",
        creator_field=None,
        sensitive_fields=("stripeCustomerId", "billingEmail", "plan"),
        category="admin",
    ),
    _builtin(
        ObjectTypes.PROFILE,
        "profiles",
        creator_field=None,
        category="admin",
    ),
    _builtin(
        ObjectTypes.REPORT,
        "reports",
        ownership_field="created_by",
        sensitive_fields=("data", "filters"),
        category="reports",
    ),
    _builtin(
        ObjectTypes.ACTIVITY,
        "activities",
        ownership_field="user_id",
        creator_field="user_id",
        sensitive_fields=("details", "metadata"),
        category="activity",
    ),
)


class ObjectTypeRegistry:
    """Registry of object definitions keyed by object type.

    Usage:
        registry = ObjectTypeRegistry()            # built-ins only
        registry.register(ObjectDefinition(
            object_key="Inspection",
            table="inspections",
            ownership_field="inspector_id",
            parents=(ParentLink(foreign_key="unit_id", object_type="Unit"),),
            organization_field=None,
        ))
        registry.require("Inspection").table       # "inspections"
    """

    def __init__(self, definitions: Optional[tuple[ObjectDefinition, ...]] = None) -> None:
        self._definitions: dict[str, ObjectDefinition] = {}
        for definition in BUILTIN_DEFINITIONS if definitions is None else definitions:
            self._definitions[definition.object_key] = definition

    def register(self, definition: ObjectDefinition) -> ObjectDefinition:
        """Add or replace a tenant-defined object type.

        Raises:
            ConfigurationError: When replacing a built-in definition, or when
                a parent link points at an unregistered type.
        """
        existing = self._definitions.get(definition.object_key)
        if existing is not None and existing.is_system:
            raise ConfigurationError(
                f"Cannot redefine built-in object type {definition.object_key}",
                object_type=definition.object_key,
            )
        for parent in definition.parents:
            if parent.object_type not in self._definitions:
                raise ConfigurationError(
                    f"Parent type {parent.object_type} of {definition.object_key} is not registered",
                    object_type=definition.object_key,
                )
        if definition.table is None:
            logger.warning(
                "Object type %s registered without a table; instance checks will fail closed",
                definition.object_key,
            )
        self._definitions[definition.object_key] = definition
        return definition

    def unregister(self, object_key: str) -> None:
        definition = self._definitions.get(object_key)
        if definition is None:
            return
        if definition.is_system:
            raise ConfigurationError(f"Cannot remove built-in object type {object_key}", object_type=object_key)
        del self._definitions[object_key]

    def get(self, object_key: str) -> Optional[ObjectDefinition]:
        """Active definition for ``object_key`` or None."""
        definition = self._definitions.get(object_key)
        if definition is None or not definition.is_active:
            return None
        return definition

    def require(self, object_key: str) -> ObjectDefinition:
        definition = self.get(object_key)
        if definition is None:
            raise UnknownObjectTypeError(f"Unknown object type {object_key}", object_type=object_key)
        return definition

    def keys(self) -> tuple[str, ...]:
        return tuple(key for key, definition in self._definitions.items() if definition.is_active)

    def __contains__(self, object_key: object) -> bool:
        return isinstance(object_key, str) and self.get(object_key) is not None

    def __iter__(self) -> Iterator[ObjectDefinition]:
        return (d for d in self._definitions.values() if d.is_active)

    def __len__(self) -> int:
        return len(self.keys())


__all__ = [
    "BUILTIN_DEFINITIONS",
    "OBJECT_TYPE_PATTERN",
    "ObjectDefinition",
    "ObjectTypeRegistry",
    "ParentLink",
    "validate_object_type_key",
]
