"""Observability module for PLC identity management.

Structured logging via structlog, with JSON output for production and
colored console output for development.

Example:
    >>> from plcid.observability import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info("plc.identity.created", did="did:plc:abc")
"""

from plcid.observability.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    is_debug_mode,
    sanitize_for_logging,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "is_debug_mode",
    "sanitize_for_logging",
]
