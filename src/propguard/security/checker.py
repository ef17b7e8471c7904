"""Security checker: the four-level access decision.

Provides:
- ``SecurityChecker``: ordered, short-circuiting check over plan, profile,
  object instance and field.
- ``ownership_allows()``: the pure level-3 rule.

Levels run strictly in order; the first failing level ends the check and
nothing after it is queried. Denials are returned as values. Store and
resolver failures are logged at ERROR and turned into denials.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..config import FieldAbsencePolicy, GuardConfig
from ..exceptions import (
    AccessDeniedError,
    ObjectNotFoundError,
    PropGuardError,
    UnauthenticatedError,
)
from ..logging import SecurityContextLoggerAdapter, get_security_logger
from ..ownership import OwnershipResolver
from ..permissions.constants import Action, DenialCode, ObjectTypes, SecurityLevel
from ..permissions.fields import decide_field_access, field_permission_index, filter_fields
from ..permissions.models import (
    FieldPermission,
    FieldPermissionCheck,
    ObjectPermission,
    ObjectPermissionCheck,
    Ownership,
    PlanFeatureCheck,
    ProfilePermissionCheck,
    SecurityCheckParams,
    SecurityCheckResult,
    SecurityContext,
)
from ..stores.base import PlanFeatureStore, ProfileStore

UNAUTHENTICATED_REASON = "User not authenticated"
RECORD_DENIED_REASON = "Access to this record is not permitted"


def ownership_allows(
    context: SecurityContext,
    ownership: Ownership,
    action: Action,
    permission: ObjectPermission,
    object_type: Optional[str] = None,
) -> bool:
    """Level-3 rule for one resolved instance.

    1. Global rows (shared profiles) are readable by every tenant, never writable
    2. The organization boundary is never crossed
    3. ``create`` only checks the boundary
    4. Members may always read their own Organization row
    5. ``can_view_all`` opens every instance of the organization
    6. Otherwise the owner passes, and the creator passes for edit/delete
    """
    if ownership.is_global:
        return action is Action.READ
    if not ownership.organization_id or ownership.organization_id != context.organization_id:
        return False
    if action is Action.CREATE:
        return True
    if object_type == ObjectTypes.ORGANIZATION and action is Action.READ:
        return True
    if permission.can_view_all:
        return True
    if ownership.owner_id and ownership.owner_id == context.user_id:
        return True
    if action in (Action.EDIT, Action.DELETE) and ownership.created_by == context.user_id:
        return True
    return False


class SecurityChecker:
    """Four-level access checker.

    Usage::

        checker = SecurityChecker(plans, profiles, OwnershipResolver(records))
        result = await checker.check_security(
            ctx,
            SecurityCheckParams(feature_key="leases", object_type="Lease", object_id=lid, action=Action.EDIT),
        )
        if result.denied:
            ...  # 403 with result.reason

    Permission rows are cached on the SecurityContext, so several checks in
    one request hit each store once.
    """

    def __init__(
        self,
        plan_store: PlanFeatureStore,
        profile_store: ProfileStore,
        resolver: OwnershipResolver,
        config: Optional[GuardConfig] = None,
    ) -> None:
        self.plan_store = plan_store
        self.profile_store = profile_store
        self.resolver = resolver
        self.config = config or GuardConfig()

    # ── Entry points ─────────────────────────────────────────────

    async def check_security(self, context: SecurityContext, params: SecurityCheckParams) -> SecurityCheckResult:
        """Run the levels in order and stop at the first failure.

        1. identity: user and organization must be known
        2. plan: ``feature_key`` must be enabled for the plan
        3. profile: the profile must grant ``action`` on ``object_type``
        4. object: the instance must be in the caller's organization and,
           without view-all, owned (or created, for edit/delete) by the caller
        5. field: ``field_name`` must be readable/editable
        """
        log = get_security_logger(__name__, context)

        if not context.is_authenticated:
            return self._deny(log, SecurityLevel.PLAN, DenialCode.UNAUTHENTICATED, UNAUTHENTICATED_REASON)

        # Level 1: plan feature
        plan_check: Optional[PlanFeatureCheck] = None
        if params.feature_key:
            try:
                enabled = params.feature_key in await self._enabled_features(context)
            except PropGuardError as exc:
                return self._lookup_failed(log, SecurityLevel.PLAN, "plan features", exc)
            plan_check = PlanFeatureCheck(feature_key=params.feature_key, enabled=enabled)
            if not enabled:
                return self._deny(
                    log,
                    SecurityLevel.PLAN,
                    DenialCode.FEATURE_DISABLED,
                    f"Feature '{params.feature_key}' is not available on your plan",
                    plan_check=plan_check,
                )

        # Level 2: profile / object permission
        if not context.profile_id:
            return self._deny(
                log,
                SecurityLevel.PROFILE,
                DenialCode.PROFILE_MISSING,
                "No profile assigned to user",
                plan_check=plan_check,
                profile_check=ProfilePermissionCheck(
                    action=params.action, object_type=params.object_type, allowed=False
                ),
            )

        permission: Optional[ObjectPermission] = None
        if params.object_type:
            try:
                permission = (await self._object_permissions(context)).get(params.object_type)
            except PropGuardError as exc:
                return self._lookup_failed(log, SecurityLevel.PROFILE, "object permissions", exc, plan_check=plan_check)

            if permission is None:
                return self._deny(
                    log,
                    SecurityLevel.PROFILE,
                    DenialCode.OBJECT_PERMISSION_UNDEFINED,
                    f"No permission defined for {params.object_type}",
                    plan_check=plan_check,
                    profile_check=ProfilePermissionCheck(
                        action=params.action, object_type=params.object_type, allowed=False
                    ),
                )
            if not permission.allows(params.action):
                return self._deny(
                    log,
                    SecurityLevel.PROFILE,
                    DenialCode.ACTION_NOT_PERMITTED,
                    f"Permission denied: cannot {params.action.value} {params.object_type}",
                    plan_check=plan_check,
                    profile_check=ProfilePermissionCheck(
                        action=params.action, object_type=params.object_type, allowed=False
                    ),
                )
        profile_check = ProfilePermissionCheck(action=params.action, object_type=params.object_type, allowed=True)

        # Level 3: object instance
        object_check: Optional[ObjectPermissionCheck] = None
        if params.object_type and params.object_id and permission is not None:
            checks = {"plan_check": plan_check, "profile_check": profile_check}
            denied_check = ObjectPermissionCheck(
                object_type=params.object_type, object_id=params.object_id, action=params.action, allowed=False
            )
            try:
                ownership = await self.resolver.resolve_ownership(params.object_type, params.object_id)
            except ObjectNotFoundError as exc:
                log.debug("Record lookup for %s %s: %s", params.object_type, params.object_id, exc.message)
                if self.config.distinguish_not_found:
                    return self._deny(
                        log, SecurityLevel.OBJECT, DenialCode.OBJECT_NOT_FOUND, "Object not found",
                        object_check=denied_check, **checks,
                    )
                return self._deny(
                    log, SecurityLevel.OBJECT, DenialCode.OWNERSHIP_VIOLATION, RECORD_DENIED_REASON,
                    object_check=denied_check, **checks,
                )
            except PropGuardError as exc:
                return self._lookup_failed(
                    log, SecurityLevel.OBJECT, "object ownership", exc, object_check=denied_check, **checks
                )

            if not ownership_allows(context, ownership, params.action, permission, params.object_type):
                log.debug(
                    "Ownership of %s %s: organization=%s owner=%s",
                    params.object_type,
                    params.object_id,
                    ownership.organization_id,
                    ownership.owner_id,
                )
                return self._deny(
                    log, SecurityLevel.OBJECT, DenialCode.OWNERSHIP_VIOLATION, RECORD_DENIED_REASON,
                    object_check=denied_check, **checks,
                )
            object_check = denied_check.model_copy(update={"allowed": True})

        # Level 4: field
        field_check: Optional[FieldPermissionCheck] = None
        if params.field_name and params.object_type and params.action.is_field_action:
            try:
                fields = await self._field_permissions(context, params.object_type)
            except PropGuardError as exc:
                return self._lookup_failed(
                    log, SecurityLevel.FIELD, "field permissions", exc,
                    plan_check=plan_check, profile_check=profile_check, object_check=object_check,
                )
            allowed, explicit = decide_field_access(
                fields.get(params.field_name),
                permission,
                params.action,
                self.config.field_absence_policy,
            )
            field_check = FieldPermissionCheck(
                object_type=params.object_type,
                field_name=params.field_name,
                action=params.action,
                allowed=allowed,
                explicit=explicit,
            )
            if not allowed:
                return self._deny(
                    log,
                    SecurityLevel.FIELD,
                    DenialCode.FIELD_NOT_PERMITTED,
                    f"Permission denied: cannot {params.action.value} field {params.field_name}",
                    plan_check=plan_check,
                    profile_check=profile_check,
                    object_check=object_check,
                    field_check=field_check,
                )

        return SecurityCheckResult(
            allowed=True,
            plan_check=plan_check,
            profile_check=profile_check,
            object_check=object_check,
            field_check=field_check,
        )

    async def can_access_feature(
        self,
        context: SecurityContext,
        feature_key: str,
        object_type: Optional[str] = None,
    ) -> bool:
        """Plan and profile levels only, with a read action."""
        result = await self.check_security(
            context,
            SecurityCheckParams(feature_key=feature_key, object_type=object_type, action=Action.READ),
        )
        return result.allowed

    async def can_perform_action(
        self,
        context: SecurityContext,
        object_type: str,
        action: Action | str,
        object_id: Optional[str] = None,
        field_name: Optional[str] = None,
        feature_key: Optional[str] = None,
    ) -> bool:
        result = await self.check_security(
            context,
            SecurityCheckParams(
                feature_key=feature_key,
                object_type=object_type,
                object_id=object_id,
                field_name=field_name,
                action=Action(action),
            ),
        )
        return result.allowed

    async def require_access(self, context: SecurityContext, params: SecurityCheckParams) -> SecurityCheckResult:
        """Like ``check_security`` but raises on denial.

        Raises:
            UnauthenticatedError: No user or organization (HTTP 401).
            AccessDeniedError: Any other denial (HTTP 403).
        """
        result = await self.check_security(context, params)
        if result.allowed:
            return result
        if result.denial_code is DenialCode.UNAUTHENTICATED:
            raise UnauthenticatedError(result.reason)
        raise AccessDeniedError(
            result.reason,
            failed_level=result.failed_level.value if result.failed_level else None,
            denial_code=result.denial_code.value if result.denial_code else None,
        )

    async def filter_readable_fields(
        self,
        context: SecurityContext,
        object_type: str,
        record: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Project ``record`` to the fields the caller's profile may read.

        Fields without a row follow the same absence policy as level 4, so
        a record shaped here never shows a field that ``check_security``
        would refuse. Without a profile only the always-visible columns
        survive.
        """
        visible = self.config.always_visible_fields
        if not context.profile_id:
            return {k: v for k, v in record.items() if k in visible}
        fields = await self._field_permissions(context, object_type)
        if self.config.field_absence_policy is FieldAbsencePolicy.ALLOW:
            return filter_fields(record, fields.values(), object_type, visible)
        permission = (await self._object_permissions(context)).get(object_type)
        return {
            key: value
            for key, value in record.items()
            if key in visible
            or decide_field_access(fields.get(key), permission, Action.READ, self.config.field_absence_policy)[0]
        }

    # ── Cached lookups ───────────────────────────────────────────

    async def _enabled_features(self, context: SecurityContext) -> frozenset[str]:
        cache = context.cache
        if cache.enabled_features is None:
            cache.enabled_features = await self.plan_store.enabled_features(context.plan_name)
        return cache.enabled_features

    async def _object_permissions(self, context: SecurityContext) -> dict[str, ObjectPermission]:
        cache = context.cache
        if cache.object_permissions is None:
            rows = await self.profile_store.object_permissions(context.profile_id or "")
            cache.object_permissions = {row.object_type: row for row in rows}
        return cache.object_permissions

    async def _field_permissions(self, context: SecurityContext, object_type: str) -> dict[str, FieldPermission]:
        cache = context.cache
        if object_type not in cache.field_permissions:
            rows = await self.profile_store.field_permissions(context.profile_id or "", object_type)
            cache.field_permissions[object_type] = field_permission_index(rows, object_type)
        return cache.field_permissions[object_type]

    # ── Results ──────────────────────────────────────────────────

    @staticmethod
    def _deny(
        log: SecurityContextLoggerAdapter,
        level: SecurityLevel,
        code: DenialCode,
        reason: str,
        **checks: Any,
    ) -> SecurityCheckResult:
        log.info("Access denied at %s level: %s (%s)", level.value, reason, code.value)
        return SecurityCheckResult(allowed=False, reason=reason, failed_level=level, denial_code=code, **checks)

    @classmethod
    def _lookup_failed(
        cls,
        log: SecurityContextLoggerAdapter,
        level: SecurityLevel,
        what: str,
        exc: PropGuardError,
        **checks: Any,
    ) -> SecurityCheckResult:
        log.error("Failed to load %s: %s (%s)", what, exc.message, exc.code)
        return cls._deny(log, level, DenialCode.LOOKUP_FAILED, "Access check could not be completed", **checks)


__all__ = [
    "RECORD_DENIED_REASON",
    "SecurityChecker",
    "UNAUTHENTICATED_REASON",
    "ownership_allows",
]
