"""Tests for OwnershipResolver."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from propguard.exceptions import ObjectNotFoundError, ObjectResolutionError, UnknownObjectTypeError
from propguard.ownership import OwnershipResolver
from propguard.permissions.registry import ObjectDefinition, ObjectTypeRegistry, ParentLink
from propguard.stores.base import RecordSource
from propguard.stores.memory import InMemoryRecordSource


class TestDirectObjects:
    @pytest.mark.asyncio
    async def test_property(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Property", "prop-own")
        assert ownership.organization_id == "org-a"
        assert ownership.owner_id == "alice"
        assert ownership.created_by == "alice"
        assert ownership.is_global is False

    @pytest.mark.asyncio
    async def test_task_owned_by_assignee(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Task", "task-assigned")
        assert ownership.owner_id == "alice"
        assert ownership.created_by == "bob"

    @pytest.mark.asyncio
    async def test_user_owns_itself(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("User", "bob")
        assert ownership.organization_id == "org-a"
        assert ownership.owner_id == "bob"

    @pytest.mark.asyncio
    async def test_organization_belongs_to_itself(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Organization", "org-b")
        assert ownership.organization_id == "org-b"
        assert ownership.owner_id is None

    @pytest.mark.asyncio
    async def test_global_profile(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Profile", "p-global")
        assert ownership.is_global is True
        assert ownership.organization_id is None


class TestDependentObjects:
    @pytest.mark.asyncio
    async def test_unit_through_property(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Unit", "unit-b")
        assert ownership.organization_id == "org-b"

    @pytest.mark.asyncio
    async def test_lease_through_unit_and_property(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Lease", "lease-own")
        assert ownership.organization_id == "org-a"
        assert ownership.owner_id == "alice"

    @pytest.mark.asyncio
    async def test_payment_prefers_lease(self, resolver: OwnershipResolver) -> None:
        """The lease chain wins over the payment's own organization column."""
        ownership = await resolver.resolve_ownership("Payment", "pay-lease")
        assert ownership.organization_id == "org-a"
        # no own owner: inherited from the lease
        assert ownership.owner_id == "bob"

    @pytest.mark.asyncio
    async def test_payment_falls_back_to_tenant(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Payment", "pay-tenant")
        assert ownership.organization_id == "org-a"

    @pytest.mark.asyncio
    async def test_payment_falls_back_to_own_column(self, resolver: OwnershipResolver) -> None:
        ownership = await resolver.resolve_ownership("Payment", "pay-direct")
        assert ownership.organization_id == "org-a"
        assert ownership.owner_id == "bob"

    @pytest.mark.asyncio
    async def test_dynamic_type_with_parent(self, record_source: InMemoryRecordSource) -> None:
        registry = ObjectTypeRegistry()
        registry.register(
            ObjectDefinition(
                object_key="Inspection",
                table="inspections",
                organization_field=None,
                ownership_field="inspector_id",
                parents=(ParentLink(foreign_key="unit_id", object_type="Unit"),),
            )
        )
        record_source.add("inspections", "insp-1", unit_id="unit-a", inspector_id="alice")
        resolver = OwnershipResolver(record_source, registry)

        ownership = await resolver.resolve_ownership("Inspection", "insp-1")

        assert ownership.organization_id == "org-a"
        assert ownership.owner_id == "alice"


class TestResolutionErrors:
    @pytest.mark.asyncio
    async def test_missing_record(self, resolver: OwnershipResolver) -> None:
        with pytest.raises(ObjectNotFoundError) as exc_info:
            await resolver.resolve_ownership("Property", "nope")
        assert exc_info.value.details["object_id"] == "nope"

    @pytest.mark.asyncio
    async def test_missing_parent(self, resolver: OwnershipResolver) -> None:
        with pytest.raises(ObjectNotFoundError) as exc_info:
            await resolver.resolve_ownership("Lease", "lease-orphan")
        assert exc_info.value.details["object_type"] == "Unit"

    @pytest.mark.asyncio
    async def test_unknown_type(self, resolver: OwnershipResolver) -> None:
        with pytest.raises(UnknownObjectTypeError):
            await resolver.resolve_ownership("Spaceship", "s-1")

    @pytest.mark.asyncio
    async def test_type_without_table(self) -> None:
        registry = ObjectTypeRegistry()
        registry.register(ObjectDefinition(object_key="Note"))
        resolver = OwnershipResolver(InMemoryRecordSource(), registry)
        with pytest.raises(ObjectResolutionError):
            await resolver.resolve_ownership("Note", "n-1")

    @pytest.mark.asyncio
    async def test_parent_cycle_bounded(self) -> None:
        """Self-referencing parent links stop at the depth limit."""
        registry = ObjectTypeRegistry()
        registry.register(ObjectDefinition(object_key="Folder", table="folders"))
        source = AsyncMock(spec=RecordSource)
        source.fetch_record.return_value = {"parent_id": "f-1"}
        registry.register(
            ObjectDefinition(
                object_key="Folder",
                table="folders",
                organization_field=None,
                parents=(ParentLink(foreign_key="parent_id", object_type="Folder"),),
            )
        )
        resolver = OwnershipResolver(source, registry)
        with pytest.raises(ObjectResolutionError):
            await resolver.resolve_ownership("Folder", "f-1")
