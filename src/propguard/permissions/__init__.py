"""Permission vocabulary, records and pure evaluation helpers.

Defines:
- ObjectTypes, Action, SecurityLevel, AccessLevel, DenialCode: vocabulary
- ObjectTypeRegistry / ObjectDefinition: where object types live and who owns them
- Profile, ObjectPermission, FieldPermission, PlanFeature: typed permission rows
- SecurityContext, SecurityCheckParams, SecurityCheckResult: checker I/O
- DEFAULT_PROFILES: starter profile matrix seeded per organization
- derive_access_level(), analyze_profile_access_level(): access summaries
- filter_fields(): field-level projection of records
"""

from .access import (
    access_level_description,
    analyze_profile_access_level,
    derive_access_level,
    has_access_level_or_higher,
    has_minimum_access_level,
    most_permissive_level,
    summarize_permissions,
    user_profile_access_level,
)
from .constants import (
    ACCESS_LEVEL_HIERARCHY,
    AccessLevel,
    Action,
    DenialCode,
    FieldAccessLevel,
    ObjectTypes,
    SecurityLevel,
)
from .defaults import DEFAULT_PROFILES, DefaultProfile, default_profile
from .fields import (
    decide_field_access,
    field_permission_index,
    filter_fields,
    filter_records,
    readable_fields,
)
from .models import (
    FieldPermission,
    FieldPermissionCheck,
    ObjectPermission,
    ObjectPermissionCheck,
    Ownership,
    PermissionCache,
    PlanFeature,
    PlanFeatureCheck,
    Profile,
    ProfileAccessSummary,
    ProfilePermissionCheck,
    SecurityCheckParams,
    SecurityCheckResult,
    SecurityContext,
)
from .registry import (
    BUILTIN_DEFINITIONS,
    ObjectDefinition,
    ObjectTypeRegistry,
    ParentLink,
    validate_object_type_key,
)

__all__ = [
    "ACCESS_LEVEL_HIERARCHY",
    "BUILTIN_DEFINITIONS",
    "DEFAULT_PROFILES",
    "AccessLevel",
    "Action",
    "DefaultProfile",
    "DenialCode",
    "FieldAccessLevel",
    "FieldPermission",
    "FieldPermissionCheck",
    "ObjectDefinition",
    "ObjectPermission",
    "ObjectPermissionCheck",
    "ObjectTypeRegistry",
    "ObjectTypes",
    "Ownership",
    "ParentLink",
    "PermissionCache",
    "PlanFeature",
    "PlanFeatureCheck",
    "Profile",
    "ProfileAccessSummary",
    "ProfilePermissionCheck",
    "SecurityCheckParams",
    "SecurityCheckResult",
    "SecurityContext",
    "SecurityLevel",
    "access_level_description",
    "analyze_profile_access_level",
    "decide_field_access",
    "default_profile",
    "derive_access_level",
    "field_permission_index",
    "filter_fields",
    "filter_records",
    "has_access_level_or_higher",
    "has_minimum_access_level",
    "most_permissive_level",
    "readable_fields",
    "summarize_permissions",
    "user_profile_access_level",
    "validate_object_type_key",
]
