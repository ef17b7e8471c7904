"""Centralized logging utilities for propguard.

This module provides:
- Logging configuration from GuardConfig
- Safe preview utilities for sensitive data
- Secret redaction
- Structured logging with SecurityContext integration
- Automatic request_id / user_id / organization_id propagation
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any, Optional

from .config import GuardConfig, LogLevel

if TYPE_CHECKING:
    from .permissions.models import SecurityContext


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|api[_-]?key|auth[_-]?token)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=._-]+)',
    r'(?i)(?:sk|pk)_(?:live|test)_[a-zA-Z0-9]{16,}',
    r'(?i)(?:iban|bank[_-]?details)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)',
    r'(?i)(?:-----BEGIN\s+(?:RSA\s+)?(?:PRIVATE\s+)?KEY-----).*?(?:-----END\s+(?:RSA\s+)?(?:PRIVATE\s+)?KEY-----)',
]

# Context attributes copied from records onto the structured output
CONTEXT_FIELDS = ("request_id", "user_id", "organization_id")

_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName",
        *CONTEXT_FIELDS,
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Converts the value to a single-line string, normalizes whitespace and
    truncates it to ``limit`` characters.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns from text.

    Removes API keys, tokens, passwords, bearer/basic credentials, bank
    details and private keys.

    Args:
        text: The text to redact
        replacement: String to replace secrets with (default: "[REDACTED]")

    Returns:
        Text with secrets redacted
    """
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Create a safe log value with preview and optional redaction.

    This is the function to use when logging record values or any other
    potentially sensitive data.
    """
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class GuardFormatter(logging.Formatter):
    """Formatter that includes request context and optional JSON output.

    This formatter:
    - Extracts request_id, user_id and organization_id from log records
    - Formats logs as JSON or plain text
    - Redacts secrets automatically
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        service_name: Optional[str] = None,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service_name:
            log_data["service"] = self.service_name

        context: dict[str, str] = {}
        if self.include_context:
            for key in CONTEXT_FIELDS:
                value = getattr(record, key, None)
                if value:
                    context[key] = str(value)
            log_data.update(context)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        parts.extend(f"{key}={value}" for key, value in context.items())
        parts.append(f": {log_data['message']}")
        line = " ".join(parts)
        if "exception" in log_data:
            line = f"{line}\n{log_data['exception']}"
        return line


class SecurityContextLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps request context onto every record.

    Usage:
        logger = get_security_logger(__name__, context=ctx)
        logger.info("Access denied at %s", "object")

    A different context can be passed per call with ``context=``.
    """

    def __init__(self, logger: logging.Logger, context: Optional["SecurityContext"] = None):
        super().__init__(logger, {})
        self.context = context

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        context = kwargs.pop("context", None) or self.context
        extra = dict(kwargs.get("extra") or {})
        if context is not None:
            extra.setdefault("request_id", context.request_id)
            if context.user_id:
                extra.setdefault("user_id", context.user_id)
            if context.organization_id:
                extra.setdefault("organization_id", context.organization_id)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[GuardConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging for a service embedding propguard.

    Args:
        config: GuardConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        GuardFormatter(
            include_context=True,
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
            service_name=config.service_name,
        )
    )
    root_logger.addHandler(console_handler)

    logging.getLogger("propguard").setLevel(log_level)


def get_security_logger(
    name: str,
    context: Optional["SecurityContext"] = None,
) -> SecurityContextLoggerAdapter:
    """Get a logger adapter bound to a SecurityContext.

    Example:
        logger = get_security_logger(__name__, context=ctx)
        logger.info("Checking %s", params.action.value)
    """
    return SecurityContextLoggerAdapter(logging.getLogger(name), context=context)


__all__ = [
    "GuardFormatter",
    "SecurityContextLoggerAdapter",
    "get_security_logger",
    "redact_secrets",
    "safe_log_value",
    "safe_preview",
    "setup_logging",
]
