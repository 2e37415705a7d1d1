"""PLC Identity Error Taxonomy.

This module defines the error hierarchy for did:plc identity management,
providing structured error handling with specific error codes and
context information.

Lower layers (encoding, keys, CIDs) raise immediately with no partial
output. Remote failures carry the stage that failed so an operator can
re-trigger the right action.
"""
from __future__ import annotations

from typing import Any


class PLCError(Exception):
    """Base exception for all PLC identity errors.

    Attributes:
        code: Error code following the plc:<area>/<reason> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class OperationValidationError(PLCError):
    """Raised when an operation is malformed.

    A malformed operation must never be signed or submitted. The message
    names the first rule the operation violates.

    Attributes:
        rule: Short identifier of the violated rule
    """

    def __init__(self, rule: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="plc:operation/invalid",
            message=message,
            details={"rule": rule, **(details or {})},
        )
        self.rule = rule


class KeyMaterialError(PLCError):
    """Raised when key material cannot be used for the requested action.

    Covers a key of the wrong curve for the requested variant, signing or
    private-encoding with a public-only key, and malformed raw key bytes.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code="plc:key/invalid", message=message, details=details or {})


class UnsupportedCurveError(KeyMaterialError):
    """Raised when a curve or key family is not supported."""

    def __init__(self, curve: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=f"Unsupported curve: {curve}",
            details={"curve": curve, **(details or {})},
        )
        self.code = "plc:key/unsupported_curve"
        self.curve = curve


class EncodingError(PLCError):
    """Raised on corrupt encoded input (bad alphabet, unknown prefix)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code="plc:encoding/invalid", message=message, details=details or {})


class RemoteError(PLCError):
    """Raised when the PLC directory cannot be reached or returns a failure.

    Never retried automatically; surfaced to the operator.

    Attributes:
        stage: Which interaction failed (fetch-last, fetch-audit, status, submit)
        status_code: HTTP status when a response was received
    """

    def __init__(
        self,
        stage: str,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details_dict: dict[str, Any] = {"stage": stage}
        if status_code is not None:
            details_dict["status_code"] = status_code
        if details:
            details_dict.update(details)
        super().__init__(
            code=f"plc:remote/{stage}",
            message=f"Error during {stage}: {message}",
            details=details_dict,
        )
        self.stage = stage
        self.status_code = status_code


class NotFoundError(PLCError):
    """Base class for lookups that found nothing."""


class IdentityNotFoundError(NotFoundError):
    """Raised when an identity is unknown locally or to the directory."""

    def __init__(self, did: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="plc:identity/not_found",
            message=f"Identity not found: {did}",
            details={"did": did, **(details or {})},
        )
        self.did = did


class KeyNotFoundError(NotFoundError):
    """Raised when a key id does not match any key held by an identity."""

    def __init__(self, key_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="plc:key/not_found",
            message=f"Key not found: {key_id}",
            details={"key_id": key_id, **(details or {})},
        )
        self.key_id = key_id


class ChainIntegrityError(PLCError):
    """Raised when an operation log does not form a valid hash chain.

    Attributes:
        index: Position of the first operation whose link is broken
    """

    def __init__(self, index: int, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="plc:chain/broken",
            message=message,
            details={"index": index, **(details or {})},
        )
        self.index = index


class ConfigurationError(PLCError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, setting: str, message: str) -> None:
        super().__init__(
            code="plc:config/invalid",
            message=message,
            details={"setting": setting},
        )
        self.setting = setting


class ArtifactSigningError(PLCError):
    """Raised when one or more artifacts in a batch could not be signed.

    The batch is processed in full before raising, so ``failures`` lists
    every version that failed rather than only the first.

    Attributes:
        failures: Mapping of artifact version to the error it raised
    """

    def __init__(self, failures: dict[str, PLCError]) -> None:
        versions = ", ".join(sorted(failures))
        super().__init__(
            code="plc:artifact/signing_failed",
            message=f"Error signing artifacts for versions: {versions}",
            details={"failures": {v: e.to_dict() for v, e in failures.items()}},
        )
        self.failures = failures
