"""Permission stores and record sources.

The SQLAlchemy backend lives in ``propguard.stores.sql``.
"""

from .base import (
    PlanFeatureStore,
    ProfileStore,
    RecordSource,
    normalize_field_permission,
    normalize_object_permission,
)
from .memory import InMemoryPlanFeatureStore, InMemoryProfileStore, InMemoryRecordSource

__all__ = [
    "InMemoryPlanFeatureStore",
    "InMemoryProfileStore",
    "InMemoryRecordSource",
    "PlanFeatureStore",
    "ProfileStore",
    "RecordSource",
    "normalize_field_permission",
    "normalize_object_permission",
]
