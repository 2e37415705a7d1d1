"""Blocking client for the PLC directory service.

Every call is an always-fresh read or a single write: there is no cache and
no retry loop. Failures surface as :class:`plcid.errors.RemoteError`
carrying the stage that failed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import httpx

from plcid.config import DEFAULT_DIRECTORY_URL, DEFAULT_TIMEOUT_SECONDS, IdentityConfig
from plcid.errors import IdentityNotFoundError, RemoteError
from plcid.observability import get_logger

logger = get_logger(__name__)

STAGE_FETCH_LAST = "fetch-last"
STAGE_FETCH_AUDIT = "fetch-audit"
STAGE_STATUS = "status"
STAGE_SUBMIT = "submit"

DID_DOCUMENT_MEDIA_TYPE = "application/did+ld+json"

# Longest response body kept in error details.
MAX_ERROR_BODY_CHARS = 2000


class PublicationStatus(str, Enum):
    PUBLISHED = "published"
    NOT_FOUND = "not_found"
    TOMBSTONED = "tombstoned"
    UNKNOWN = "unknown"


class DirectoryClient:
    """Talks to ``{directory}/{did}`` and its ``log/last`` and ``log/audit`` views.

    Args:
        base_url: Directory base URL.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport for tests (e.g. MockTransport).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_DIRECTORY_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: IdentityConfig, transport: httpx.BaseTransport | None = None
    ) -> DirectoryClient:
        return cls(config.directory_url, config.timeout_seconds, transport)

    def _request(self, stage: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client_kwargs: dict[str, Any] = {"timeout": httpx.Timeout(self.timeout)}
        if self._transport is not None:
            client_kwargs["transport"] = self._transport

        url = f"{self.base_url}/{path}"
        try:
            with httpx.Client(**client_kwargs) as client:
                response = client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("plc.directory.request_failed", stage=stage, url=url, error=str(e))
            raise RemoteError(stage, str(e), details={"url": url}) from e

        logger.debug(
            "plc.directory.response", stage=stage, url=url, status_code=response.status_code
        )
        return response

    @staticmethod
    def _fail(stage: str, response: httpx.Response) -> RemoteError:
        body = response.text[:MAX_ERROR_BODY_CHARS]
        return RemoteError(
            stage,
            body or response.reason_phrase,
            status_code=response.status_code,
            details={"body": body},
        )

    @staticmethod
    def _json(stage: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(
                stage, f"Invalid JSON from directory: {e}", status_code=response.status_code
            ) from e

    def get_last_operation(self, did: str) -> dict[str, Any]:
        response = self._request(
            STAGE_FETCH_LAST, "GET", f"{did}/log/last",
            headers={"Accept": DID_DOCUMENT_MEDIA_TYPE},
        )
        if response.status_code == 404:
            raise IdentityNotFoundError(did, details={"stage": STAGE_FETCH_LAST})
        if response.status_code != 200:
            raise self._fail(STAGE_FETCH_LAST, response)
        data = self._json(STAGE_FETCH_LAST, response)
        if not isinstance(data, dict):
            raise RemoteError(STAGE_FETCH_LAST, "Expected a JSON object for the last operation")
        return data

    def get_audit_log(self, did: str) -> list[dict[str, Any]]:
        """Full operation history, oldest first.

        Entries may be bare operations or audit records wrapping one under
        ``operation``; both are returned as the operation object.
        """
        response = self._request(
            STAGE_FETCH_AUDIT, "GET", f"{did}/log/audit",
            headers={"Accept": DID_DOCUMENT_MEDIA_TYPE},
        )
        if response.status_code == 404:
            raise IdentityNotFoundError(did, details={"stage": STAGE_FETCH_AUDIT})
        if response.status_code != 200:
            raise self._fail(STAGE_FETCH_AUDIT, response)
        data = self._json(STAGE_FETCH_AUDIT, response)
        if not isinstance(data, list):
            raise RemoteError(STAGE_FETCH_AUDIT, "Expected a JSON array for the audit log")
        entries = []
        for entry in data:
            if isinstance(entry, dict) and isinstance(entry.get("operation"), dict):
                entry = entry["operation"]
            if not isinstance(entry, dict):
                raise RemoteError(STAGE_FETCH_AUDIT, "Audit log entry is not an object")
            entries.append(entry)
        return entries

    def get_status(self, did: str) -> PublicationStatus:
        response = self._request(
            STAGE_STATUS, "GET", did, headers={"Accept": DID_DOCUMENT_MEDIA_TYPE}
        )
        if response.status_code == 200:
            return PublicationStatus.PUBLISHED
        if response.status_code == 404:
            return PublicationStatus.NOT_FOUND
        if response.status_code == 410:
            return PublicationStatus.TOMBSTONED
        return PublicationStatus.UNKNOWN

    def submit_operation(self, did: str, payload: dict[str, Any]) -> None:
        response = self._request(STAGE_SUBMIT, "POST", did, json=payload)
        if response.status_code != 200:
            logger.warning(
                "plc.directory.submit_rejected", did=did, status_code=response.status_code
            )
            raise self._fail(STAGE_SUBMIT, response)
