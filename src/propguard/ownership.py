"""Object ownership resolution.

Maps ``(object_type, object_id)`` to the organization that holds the
instance and the user that owns it, following the registry:

- direct types read their own organization and ownership columns
- dependent types (Unit, Lease, Payment, ...) resolve the organization
  through their parent link(s), falling back to their own column
- ``User`` is owned by itself; ``Organization`` belongs to itself
- a ``Profile`` with no organization is global
"""

from __future__ import annotations

import logging
from typing import Optional

from .exceptions import ObjectNotFoundError, ObjectResolutionError
from .permissions.constants import ObjectTypes
from .permissions.models import Ownership
from .permissions.registry import ObjectDefinition, ObjectTypeRegistry
from .stores.base import RecordSource

logger = logging.getLogger(__name__)

MAX_PARENT_DEPTH = 8


class OwnershipResolver:
    """Resolve ownership of object instances through a RecordSource.

    Usage:
        resolver = OwnershipResolver(SqlRecordSource(sessions))
        ownership = await resolver.resolve_ownership("Lease", lease_id)
        ownership.organization_id  # taken from the lease's unit's property
    """

    def __init__(self, source: RecordSource, registry: Optional[ObjectTypeRegistry] = None) -> None:
        self.source = source
        self.registry = registry or ObjectTypeRegistry()

    async def resolve_ownership(self, object_type: str, object_id: str) -> Ownership:
        """Resolve the owner of one instance.

        Raises:
            UnknownObjectTypeError: ``object_type`` is not registered.
            ObjectNotFoundError: The instance or a referenced parent is missing.
            ObjectResolutionError: The type has no table or its parent chain loops.
        """
        return await self._resolve(object_type, object_id, depth=0)

    async def _resolve(self, object_type: str, object_id: str, depth: int) -> Ownership:
        if depth > MAX_PARENT_DEPTH:
            raise ObjectResolutionError(
                f"Parent chain of {object_type} exceeds {MAX_PARENT_DEPTH} levels", object_type=object_type
            )

        definition = self.registry.require(object_type)
        if definition.table is None:
            raise ObjectResolutionError(f"Object type {object_type} has no table", object_type=object_type)

        record = await self.source.fetch_record(definition.table, object_id, _columns(definition))
        if record is None:
            logger.debug("%s %s not found in %s", object_type, object_id, definition.table)
            raise ObjectNotFoundError(
                f"{object_type} {object_id} not found", object_type=object_type, object_id=object_id
            )

        if object_type == ObjectTypes.ORGANIZATION:
            return Ownership(organization_id=object_id)

        own_org = record.get(definition.organization_field) if definition.organization_field else None
        owner_id = record.get(definition.ownership_field) if definition.ownership_field else None
        created_by = record.get(definition.creator_field) if definition.creator_field else None

        organization_id = None
        for parent in definition.parents:
            parent_id = record.get(parent.foreign_key)
            if not parent_id:
                continue
            parent_ownership = await self._resolve(parent.object_type, str(parent_id), depth + 1)
            organization_id = parent_ownership.organization_id
            owner_id = owner_id or parent_ownership.owner_id
            break
        if organization_id is None:
            organization_id = own_org

        if object_type == ObjectTypes.USER:
            owner_id = object_id

        return Ownership(
            organization_id=_str_or_none(organization_id),
            owner_id=_str_or_none(owner_id),
            created_by=_str_or_none(created_by),
            is_global=object_type == ObjectTypes.PROFILE and organization_id is None,
        )


def _columns(definition: ObjectDefinition) -> list[str]:
    columns = [
        definition.organization_field,
        definition.ownership_field,
        definition.creator_field,
        *(parent.foreign_key for parent in definition.parents),
    ]
    return list(dict.fromkeys(c for c in columns if c)) or ["id"]


def _str_or_none(value: object) -> Optional[str]:
    return None if value is None else str(value)


__all__ = ["MAX_PARENT_DEPTH", "OwnershipResolver"]
