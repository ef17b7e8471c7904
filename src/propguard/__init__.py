from .config import FieldAbsencePolicy, GuardConfig, LogLevel, load_config_from_env
from .exceptions import (
    AccessDeniedError,
    PropGuardError,
    UnauthenticatedError,
    get_http_status_code,
)
from .logging import (
    GuardFormatter,
    SecurityContextLoggerAdapter,
    get_security_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .ownership import OwnershipResolver
from .permissions import (
    AccessLevel,
    Action,
    DenialCode,
    FieldPermission,
    ObjectDefinition,
    ObjectPermission,
    ObjectTypeRegistry,
    ObjectTypes,
    PlanFeature,
    Profile,
    SecurityCheckParams,
    SecurityCheckResult,
    SecurityContext,
    SecurityLevel,
    analyze_profile_access_level,
    derive_access_level,
    filter_fields,
    has_access_level_or_higher,
)
from .security import SecurityChecker, configure_security_checker, get_security_checker

__version__ = "0.1.0"

__all__ = [
    'AccessDeniedError',
    'AccessLevel',
    'Action',
    'DenialCode',
    'FieldAbsencePolicy',
    'FieldPermission',
    'GuardConfig',
    'GuardFormatter',
    'LogLevel',
    'ObjectDefinition',
    'ObjectPermission',
    'ObjectTypeRegistry',
    'ObjectTypes',
    'OwnershipResolver',
    'PlanFeature',
    'Profile',
    'PropGuardError',
    'SecurityCheckParams',
    'SecurityCheckResult',
    'SecurityChecker',
    'SecurityContext',
    'SecurityContextLoggerAdapter',
    'SecurityLevel',
    'UnauthenticatedError',
    'analyze_profile_access_level',
    'configure_security_checker',
    'derive_access_level',
    'filter_fields',
    'get_http_status_code',
    'get_security_checker',
    'get_security_logger',
    'has_access_level_or_higher',
    'load_config_from_env',
    'redact_secrets',
    'safe_log_value',
    'safe_preview',
    'setup_logging',
]
