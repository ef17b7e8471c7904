"""Tests for the in-memory ProfileStore and default profile seeding."""

from __future__ import annotations

import logging

import pytest

from propguard.exceptions import (
    DuplicateProfileError,
    InvalidObjectTypeError,
    ProfileInUseError,
    ProfileNotFoundError,
    SystemProfileProtectedError,
)
from propguard.permissions.constants import AccessLevel, FieldAccessLevel, ObjectTypes
from propguard.permissions.defaults import DEFAULT_PROFILES, default_profile
from propguard.permissions.models import FieldPermission, ObjectPermission
from propguard.stores.memory import InMemoryProfileStore


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


class TestProfileLifecycle:
    @pytest.mark.asyncio
    async def test_create_global_and_org_profiles(self, store: InMemoryProfileStore) -> None:
        shared = await store.create_profile("Shared")
        local = await store.create_profile("Local", organization_id="org-a", description="Org only")
        assert shared.is_global is True and shared.organization_id is None
        assert local.is_global is False
        assert (await store.get_profile(local.id)) == local

    @pytest.mark.asyncio
    async def test_duplicate_name_in_same_scope(self, store: InMemoryProfileStore) -> None:
        await store.create_profile("Agent", organization_id="org-a")
        await store.create_profile("Agent", organization_id="org-b")
        await store.create_profile("Agent")
        with pytest.raises(DuplicateProfileError):
            await store.create_profile("Agent", organization_id="org-a")
        with pytest.raises(DuplicateProfileError):
            await store.create_profile("Agent")

    @pytest.mark.asyncio
    async def test_list_profiles_global_first(self, store: InMemoryProfileStore) -> None:
        await store.create_profile("Zeta", organization_id="org-a")
        await store.create_profile("Beta")
        await store.create_profile("Alpha", organization_id="org-a")
        await store.create_profile("Other", organization_id="org-b")
        names = [p.name for p in await store.list_profiles("org-a")]
        assert names == ["Beta", "Alpha", "Zeta"]
        assert [p.name for p in await store.list_profiles("org-a", include_global=False)] == ["Alpha", "Zeta"]

    @pytest.mark.asyncio
    async def test_update_profile(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        updated = await store.update_profile(profile.id, name="Field Agent", is_active=False)
        assert updated.name == "Field Agent"
        assert updated.is_active is False
        assert updated.updated_at >= profile.updated_at

    @pytest.mark.asyncio
    async def test_system_profile_cannot_be_renamed(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Owner", organization_id="org-a", is_system=True)
        with pytest.raises(SystemProfileProtectedError):
            await store.update_profile(profile.id, name="Boss")
        # description changes are allowed
        updated = await store.update_profile(profile.id, description="Portfolio owner")
        assert updated.description == "Portfolio owner"

    @pytest.mark.asyncio
    async def test_update_unknown(self, store: InMemoryProfileStore) -> None:
        with pytest.raises(ProfileNotFoundError):
            await store.update_profile("missing", name="x")


class TestDeleteProfile:
    @pytest.mark.asyncio
    async def test_system_profile_protected(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Owner", organization_id="org-a", is_system=True)
        with pytest.raises(SystemProfileProtectedError):
            await store.delete_profile(profile.id)

    @pytest.mark.asyncio
    async def test_profile_in_use(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        await store.assign_profile("u-1", profile.id)
        with pytest.raises(ProfileInUseError) as exc_info:
            await store.delete_profile(profile.id)
        assert exc_info.value.details["users"] == 1

    @pytest.mark.asyncio
    async def test_delete_cascades_rows(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Temp", organization_id="org-a")
        await store.set_object_permission(profile.id, "Lease", ObjectPermission(can_read=True))
        await store.set_field_permission(profile.id, "Lease", "rent", FieldPermission(can_read=True))
        await store.delete_profile(profile.id)
        assert await store.get_profile(profile.id) is None
        assert await store.object_permissions(profile.id) == []
        assert await store.field_permissions(profile.id) == []

    @pytest.mark.asyncio
    async def test_delete_unknown(self, store: InMemoryProfileStore) -> None:
        with pytest.raises(ProfileNotFoundError):
            await store.delete_profile("missing")


class TestPermissionRows:
    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        grant = ObjectPermission(can_read=True, can_edit=True)
        await store.set_object_permission(profile.id, "Lease", grant)
        await store.set_object_permission(profile.id, "Lease", grant)
        rows = await store.object_permissions(profile.id)
        assert len(rows) == 1
        assert rows[0].profile_id == profile.id
        assert rows[0].access_level is AccessLevel.READ_WRITE

    @pytest.mark.asyncio
    async def test_last_write_wins(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        await store.set_object_permission(profile.id, "Lease", ObjectPermission(can_read=True, can_edit=True))
        await store.set_object_permission(profile.id, "Lease", ObjectPermission(can_read=True))
        (row,) = await store.object_permissions(profile.id)
        assert row.can_edit is False
        assert row.access_level is AccessLevel.READ

    @pytest.mark.asyncio
    async def test_contradicting_level_recomputed(self, store: InMemoryProfileStore, caplog) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        with caplog.at_level(logging.WARNING, logger="propguard.stores.base"):
            row = await store.set_object_permission(
                profile.id, "Lease", ObjectPermission(access_level=AccessLevel.ALL, can_read=True)
            )
        assert row.access_level is AccessLevel.READ
        assert "contradicts" in caplog.text

    @pytest.mark.asyncio
    async def test_field_rows(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        await store.set_field_permission(profile.id, "Tenant", "email", FieldPermission(can_read=True, can_edit=True))
        await store.set_field_permission(profile.id, "Lease", "rent", FieldPermission(can_read=True))
        tenant_rows = await store.field_permissions(profile.id, "Tenant")
        assert [r.field_name for r in tenant_rows] == ["email"]
        assert tenant_rows[0].access_level is FieldAccessLevel.READ_WRITE
        assert len(await store.field_permissions(profile.id)) == 2

    @pytest.mark.asyncio
    async def test_rows_require_existing_profile(self, store: InMemoryProfileStore) -> None:
        with pytest.raises(ProfileNotFoundError):
            await store.set_object_permission("missing", "Lease", ObjectPermission(can_read=True))

    @pytest.mark.asyncio
    async def test_invalid_object_type(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        with pytest.raises(InvalidObjectTypeError):
            await store.set_object_permission(profile.id, "not a type", ObjectPermission())


class TestUserAssignment:
    @pytest.mark.asyncio
    async def test_assign_and_count(self, store: InMemoryProfileStore) -> None:
        profile = await store.create_profile("Agent", organization_id="org-a")
        await store.assign_profile("u-1", profile.id)
        await store.assign_profile("u-2", profile.id)
        assert await store.user_profile_id("u-1") == profile.id
        assert await store.user_profile_id("u-9") is None
        assert await store.count_profile_users(profile.id) == 2

    @pytest.mark.asyncio
    async def test_assign_unknown_profile(self, store: InMemoryProfileStore) -> None:
        with pytest.raises(ProfileNotFoundError):
            await store.assign_profile("u-1", "missing")


class TestSeedDefaultProfiles:
    @pytest.mark.asyncio
    async def test_seeds_starter_profiles(self, store: InMemoryProfileStore) -> None:
        profiles = await store.seed_default_profiles("org-a")
        assert [p.name for p in profiles] == ["Owner", "Administrator", "Accountant", "Agent", "Viewer"]
        assert all(p.is_system and p.organization_id == "org-a" for p in profiles)

        owner_rows = {r.object_type: r for r in await store.object_permissions(profiles[0].id)}
        assert set(owner_rows) == set(ObjectTypes.ALL)
        assert owner_rows["Property"].access_level is AccessLevel.ALL

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, store: InMemoryProfileStore) -> None:
        first = await store.seed_default_profiles("org-a")
        second = await store.seed_default_profiles("org-a")
        assert [p.id for p in first] == [p.id for p in second]
        assert len(await store.list_profiles("org-a", include_global=False)) == len(DEFAULT_PROFILES)
        for profile in first:
            rows = await store.object_permissions(profile.id)
            assert len(rows) == len({r.object_type for r in rows})

    @pytest.mark.asyncio
    async def test_seeding_global(self, store: InMemoryProfileStore) -> None:
        profiles = await store.seed_default_profiles()
        assert all(p.is_global for p in profiles)

    def test_viewer_is_read_only(self) -> None:
        viewer = default_profile("Viewer")
        assert viewer is not None
        for permission in viewer.permissions.values():
            assert not (permission.can_create or permission.can_edit or permission.can_delete)
        assert default_profile("Janitor") is None
