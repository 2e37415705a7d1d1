"""Explicit configuration for identity management.

Configuration is built once and passed into :class:`plcid.plc.did.DID` and
the directory client at construction time.

Environment Variables:
    PLCID_DIRECTORY_URL: Base URL of the PLC directory (default https://plc.directory)
    PLCID_REPOSITORY_URL: Base URL of this publisher's package repository API
    PLCID_HTTP_TIMEOUT: Directory request timeout in seconds (default 30)
"""

from __future__ import annotations

import os

from pydantic import Field, field_validator

from plcid.errors import ConfigurationError
from plcid.models.base import PLCBaseModel

ENV_DIRECTORY_URL = "PLCID_DIRECTORY_URL"
ENV_REPOSITORY_URL = "PLCID_REPOSITORY_URL"
ENV_HTTP_TIMEOUT = "PLCID_HTTP_TIMEOUT"

DEFAULT_DIRECTORY_URL = "https://plc.directory"
DEFAULT_TIMEOUT_SECONDS = 30.0

REPO_SERVICE_ID = "fairpm_repo"
REPO_SERVICE_TYPE = "FairPackageManagementRepo"


class IdentityConfig(PLCBaseModel):
    """Where the directory lives and which repository service identities advertise."""

    directory_url: str = Field(default=DEFAULT_DIRECTORY_URL)
    repository_url: str | None = Field(
        default=None,
        description="Package repository API base; the service endpoint is <repository_url>/packages/<did>",
    )
    service_id: str = REPO_SERVICE_ID
    service_type: str = REPO_SERVICE_TYPE
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)

    @field_validator("directory_url", "repository_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v else v

    def service_endpoint(self, did: str) -> str:
        if not self.repository_url:
            raise ConfigurationError(
                "repository_url",
                f"{ENV_REPOSITORY_URL} must be set to publish the repository service endpoint",
            )
        return f"{self.repository_url}/packages/{did}"

    def repository_services(self, did: str) -> dict[str, dict[str, str]]:
        return {
            self.service_id: {
                "endpoint": self.service_endpoint(did),
                "type": self.service_type,
            }
        }


def load_config() -> IdentityConfig:
    """Build an :class:`IdentityConfig` from the environment."""
    timeout_raw = os.environ.get(ENV_HTTP_TIMEOUT, "").strip()
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
    except ValueError as e:
        raise ConfigurationError(
            "timeout_seconds", f"{ENV_HTTP_TIMEOUT} must be a number, got {timeout_raw!r}"
        ) from e
    return IdentityConfig(
        directory_url=os.environ.get(ENV_DIRECTORY_URL, DEFAULT_DIRECTORY_URL).strip(),
        repository_url=os.environ.get(ENV_REPOSITORY_URL, "").strip() or None,
        timeout_seconds=timeout,
    )
