"""Structured logging configuration for PLC identity management.

This module configures structlog for structured logging with support for
both development (console) and production (JSON) output formats.

Environment Variables:
    PLCID_LOG_FORMAT: Set to "json" for JSON output, "console" for colored output
    PLCID_LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR)
    PLCID_SERVICE_NAME: Service name to include in logs
    PLCID_DEBUG: Set to "true" or "1" to log full data; otherwise key material is redacted

Example:
    >>> from plcid.observability.logging import get_logger, configure_logging
    >>>
    >>> configure_logging(log_format="json", log_level="INFO")
    >>> logger = get_logger("plcid.plc.did")
    >>> logger.info("plc.operation.submitted", did="did:plc:abc")
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.typing import Processor

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_SERVICE_NAME = "plc-identity"

ENV_LOG_FORMAT = "PLCID_LOG_FORMAT"
ENV_LOG_LEVEL = "PLCID_LOG_LEVEL"
ENV_SERVICE_NAME = "PLCID_SERVICE_NAME"
ENV_DEBUG = "PLCID_DEBUG"

REDACTED_PLACEHOLDER = "***REDACTED***"

# Key substrings (case-insensitive) that indicate secret material.
_SENSITIVE_KEY_PATTERNS = frozenset({"private", "secret", "key", "token", "authorization"})

_logging_configured = False


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with key-material fields redacted.

    Nested dicts and lists of dicts are handled recursively. When
    PLCID_DEBUG is enabled the data is returned unchanged.

    Example:
        >>> sanitize_for_logging({"did": "did:plc:abc", "rotation_keys": ["z..."]})
        {'did': 'did:plc:abc', 'rotation_keys': '***REDACTED***'}
    """
    if not data:
        return {}
    if is_debug_mode():
        return dict(data)
    result: dict[str, Any] = {}
    for k, v in data.items():
        if _is_sensitive_key(k):
            result[k] = REDACTED_PLACEHOLDER
        elif isinstance(v, dict):
            result[k] = sanitize_for_logging(v)
        elif isinstance(v, list):
            result[k] = [
                sanitize_for_logging(item) if isinstance(item, dict) else item for item in v
            ]
        else:
            result[k] = v
    return result


def is_debug_mode() -> bool:
    """Return True if PLCID_DEBUG is set to a truthy value (e.g. true, 1)."""
    value = os.environ.get(ENV_DEBUG, "").strip().lower()
    return value in ("true", "1", "yes", "on")


def _get_log_level() -> str:
    return os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()


def _get_log_format() -> str:
    return os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT).lower()


def _get_service_name() -> str:
    return os.environ.get(ENV_SERVICE_NAME, DEFAULT_SERVICE_NAME)


def _redact_key_material(
    logger: Any, method_name: str, event_dict: structlog.typing.EventDict
) -> structlog.typing.EventDict:
    return sanitize_for_logging(event_dict)


def _service_adder(service_name: str) -> Processor:
    def add_service(
        logger: Any, method_name: str, event_dict: structlog.typing.EventDict
    ) -> structlog.typing.EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service


def _get_shared_processors(service_name: str) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _service_adder(service_name),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _redact_key_material,
    ]


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_format: Output format - "json" or "console". Defaults to env var or "console"
        log_level: Minimum log level. Defaults to env var or "INFO"
        service_name: Service name for log context. Defaults to env var or "plc-identity"
        force: If True, reconfigure even if already configured
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    log_format = log_format or _get_log_format()
    log_level = log_level or _get_log_level()
    service_name = service_name or _get_service_name()

    shared_processors = _get_shared_processors(service_name)

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stderr keeps CLI stdout clean for command output.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level))

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name, configuring defaults if needed.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger = logger.bind(did="did:plc:abc")
        >>> logger.info("plc.update.noop")
    """
    if not _logging_configured:
        configure_logging()

    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with :func:`bind_context`; the service name is kept."""
    structlog.contextvars.clear_contextvars()
