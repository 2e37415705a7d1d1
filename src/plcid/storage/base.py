"""Identity record and the store protocol.

A record holds the only persistent state of an identity: its DID string and
the ordered private encodings of its rotation and verification keys.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import Field

from plcid.models.base import PLCBaseModel


class IdentityRecord(PLCBaseModel):
    handle: str | None = Field(default=None, description="Store-assigned internal id")
    did: str
    rotation_keys: list[str] = Field(default_factory=list)
    verification_keys: list[str] = Field(default_factory=list)


@runtime_checkable
class IdentityStore(Protocol):
    """Key-value persistence for identity records, keyed by handle.

    ``save`` assigns a handle to records that have none and returns it.
    """

    def save(self, record: IdentityRecord) -> str: ...

    def get(self, handle: str) -> IdentityRecord | None: ...

    def find_by_did(self, did: str) -> IdentityRecord | None: ...

    def list_records(self) -> list[IdentityRecord]: ...
