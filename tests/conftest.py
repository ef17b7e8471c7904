"""Shared fixtures: two organizations, an Agent profile and a small portfolio."""

from __future__ import annotations

import pytest

from propguard.config import GuardConfig
from propguard.ownership import OwnershipResolver
from propguard.permissions.models import (
    FieldPermission,
    ObjectPermission,
    PlanFeature,
    Profile,
    SecurityContext,
)
from propguard.security.checker import SecurityChecker
from propguard.stores.memory import InMemoryPlanFeatureStore, InMemoryProfileStore, InMemoryRecordSource

ORG_A = "org-a"
ORG_B = "org-b"
AGENT_ID = "p-agent"


def grant(object_type: str, **flags: bool) -> ObjectPermission:
    return ObjectPermission(profile_id=AGENT_ID, object_type=object_type, **flags)


@pytest.fixture
def plan_store() -> InMemoryPlanFeatureStore:
    return InMemoryPlanFeatureStore(
        [
            PlanFeature(plan_name="premium", feature_key="properties"),
            PlanFeature(plan_name="premium", feature_key="leases"),
            PlanFeature(plan_name="premium", feature_key="tasks"),
            PlanFeature(plan_name="premium", feature_key="reports", limits={"max_reports": 50}),
            PlanFeature(plan_name="freemium", feature_key="properties"),
            PlanFeature(plan_name="freemium", feature_key="leases", is_enabled=False),
        ]
    )


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    agent = Profile(id=AGENT_ID, organization_id=ORG_A, name="Agent")
    viewer = Profile(id="p-viewer", organization_id=ORG_A, name="Viewer")
    return InMemoryProfileStore(
        profiles=[agent, viewer],
        object_permissions=[
            grant("Property", can_read=True, can_view_all=False, can_edit=True),
            grant("Unit", can_read=True, can_view_all=True),
            grant("Lease", can_read=True, can_create=True, can_edit=True),
            grant("Tenant", can_read=True, can_edit=True, can_view_all=True),
            grant("Task", can_read=True, can_edit=True, can_delete=True),
            grant("Payment", can_read=True, can_view_all=True),
            grant("Profile", can_read=True, can_view_all=True, can_edit=True),
            grant("User", can_read=True),
            ObjectPermission(profile_id="p-viewer", object_type="Property", can_read=True, can_view_all=True),
        ],
        field_permissions=[
            FieldPermission(profile_id=AGENT_ID, object_type="Tenant", field_name="bankDetails", is_sensitive=True),
            FieldPermission(profile_id=AGENT_ID, object_type="Tenant", field_name="email", can_read=True),
        ],
        users={"alice": AGENT_ID, "bob": "p-viewer"},
    )


@pytest.fixture
def record_source() -> InMemoryRecordSource:
    return InMemoryRecordSource(
        {
            "properties": {
                "prop-own": {"organization_id": ORG_A, "created_by": "alice"},
                "prop-other": {"organization_id": ORG_A, "created_by": "bob"},
                "prop-b": {"organization_id": ORG_B, "created_by": "mallory"},
            },
            "units": {
                "unit-a": {"property_id": "prop-other", "created_by": "bob"},
                "unit-b": {"property_id": "prop-b", "created_by": "mallory"},
            },
            "leases": {
                "lease-own": {"unit_id": "unit-a", "created_by": "alice"},
                "lease-other": {"unit_id": "unit-a", "created_by": "bob"},
                "lease-b": {"unit_id": "unit-b", "created_by": "mallory"},
                "lease-orphan": {"unit_id": "unit-missing", "created_by": "alice"},
            },
            "tenants": {
                "tenant-a": {"organization_id": ORG_A, "created_by": "bob"},
            },
            "payments": {
                "pay-lease": {"lease_id": "lease-other", "tenant_id": "tenant-a", "organization_id": ORG_B},
                "pay-tenant": {"lease_id": None, "tenant_id": "tenant-a", "organization_id": None},
                "pay-direct": {"lease_id": None, "tenant_id": None, "organization_id": ORG_A, "created_by": "bob"},
            },
            "tasks": {
                "task-assigned": {"organization_id": ORG_A, "assigned_to": "alice", "created_by": "bob"},
                "task-created": {"organization_id": ORG_A, "assigned_to": "bob", "created_by": "alice"},
                "task-foreign": {"organization_id": ORG_A, "assigned_to": "bob", "created_by": "bob"},
            },
            "users": {
                "alice": {"organization_id": ORG_A},
                "bob": {"organization_id": ORG_A},
                "mallory": {"organization_id": ORG_B},
            },
            "organizations": {
                ORG_A: {"name": "Acme Lettings"},
                ORG_B: {"name": "Other Estates"},
            },
            "profiles": {
                "p-global": {"organization_id": None},
                AGENT_ID: {"organization_id": ORG_A},
                "p-foreign": {"organization_id": ORG_B},
            },
        }
    )


@pytest.fixture
def resolver(record_source: InMemoryRecordSource) -> OwnershipResolver:
    return OwnershipResolver(record_source)


@pytest.fixture
def config() -> GuardConfig:
    return GuardConfig()


@pytest.fixture
def checker(
    plan_store: InMemoryPlanFeatureStore,
    profile_store: InMemoryProfileStore,
    resolver: OwnershipResolver,
    config: GuardConfig,
) -> SecurityChecker:
    return SecurityChecker(plan_store, profile_store, resolver, config)


@pytest.fixture
def alice() -> SecurityContext:
    return SecurityContext(user_id="alice", organization_id=ORG_A, profile_id=AGENT_ID, plan_name="premium")
