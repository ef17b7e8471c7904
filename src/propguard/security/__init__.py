"""Access enforcement for propguard.

Usage (in an API layer)::

    from propguard.security import configure_security_checker, get_security_checker

    configure_security_checker(plans, profiles, OwnershipResolver(records), config)

    async def update_lease(request, lease_id):
        checker = get_security_checker()
        await checker.require_access(
            request.security_context,
            SecurityCheckParams(feature_key="leases", object_type="Lease", object_id=lease_id, action="edit"),
        )
"""

from __future__ import annotations

from typing import Optional

from ..config import GuardConfig
from ..exceptions import ConfigurationError
from ..ownership import OwnershipResolver
from ..stores.base import PlanFeatureStore, ProfileStore
from .checker import (
    RECORD_DENIED_REASON,
    UNAUTHENTICATED_REASON,
    SecurityChecker,
    ownership_allows,
)

# ── Singleton factory ────────────────────────────────────────────

_checker: SecurityChecker | None = None


def configure_security_checker(
    plan_store: PlanFeatureStore,
    profile_store: ProfileStore,
    resolver: OwnershipResolver,
    config: Optional[GuardConfig] = None,
) -> SecurityChecker:
    """Create the process-wide SecurityChecker, replacing any previous one."""
    global _checker
    _checker = SecurityChecker(plan_store, profile_store, resolver, config)
    return _checker


def get_security_checker() -> SecurityChecker:
    """Return the configured SecurityChecker.

    Raises:
        ConfigurationError: configure_security_checker() was never called.
    """
    if _checker is None:
        raise ConfigurationError("Security checker is not configured")
    return _checker


def reset_security_checker() -> None:
    """Reset the singleton (for testing)."""
    global _checker
    _checker = None


__all__ = [
    "RECORD_DENIED_REASON",
    "SecurityChecker",
    "UNAUTHENTICATED_REASON",
    "configure_security_checker",
    "get_security_checker",
    "ownership_allows",
    "reset_security_checker",
]
