"""Signed metadata for release artifacts.

Artifacts are signed with the newest (last) verification key of an
identity. Batches process every version and report all failures together.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import Field

from plcid.crypto.signing import content_hash, sign_artifact_data
from plcid.errors import ArtifactSigningError, KeyMaterialError, PLCError
from plcid.models.base import PLCBaseModel
from plcid.observability import get_logger
from plcid.plc.did import DID

logger = get_logger(__name__)


class ArtifactMetadata(PLCBaseModel):
    sha256: str = Field(..., description="Content hash, sha256:<hex>")
    signature: str = Field(..., description="base64url Ed25519 signature over SHA-384 of the bytes")
    etag: str | None = None


def generate_artifact_metadata(did: DID, data: bytes, etag: str | None = None) -> ArtifactMetadata:
    keys = did.get_verification_keys()
    if not keys:
        raise KeyMaterialError("No verification keys found for DID", details={"did": did.id})
    signing_key = keys[-1]
    return ArtifactMetadata(
        sha256=content_hash(data),
        signature=sign_artifact_data(signing_key, data),
        etag=etag,
    )


def sign_artifacts(did: DID, artifacts: Mapping[str, bytes]) -> dict[str, ArtifactMetadata]:
    """Sign every version in ``artifacts``.

    Raises:
        ArtifactSigningError: Listing each version that failed, after all
            versions have been attempted.
    """
    results: dict[str, ArtifactMetadata] = {}
    failures: dict[str, PLCError] = {}
    for version, data in artifacts.items():
        try:
            results[version] = generate_artifact_metadata(did, data)
        except PLCError as e:
            logger.warning("plc.artifact.signing_failed", did=did.id, version=version, code=e.code)
            failures[version] = e
    if failures:
        raise ArtifactSigningError(failures)
    return results
