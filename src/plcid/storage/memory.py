"""In-memory IdentityStore.

Useful for testing and short-lived tools; nothing survives the process.
"""

from __future__ import annotations

import threading
import uuid

from plcid.storage.base import IdentityRecord


class InMemoryIdentityStore:
    """Thread-safe in-memory implementation of IdentityStore."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, IdentityRecord] = {}

    def save(self, record: IdentityRecord) -> str:
        with self._lock:
            handle = record.handle or uuid.uuid4().hex
            self._records[handle] = record.model_copy(update={"handle": handle})
            return handle

    def get(self, handle: str) -> IdentityRecord | None:
        with self._lock:
            return self._records.get(handle)

    def find_by_did(self, did: str) -> IdentityRecord | None:
        with self._lock:
            for record in self._records.values():
                if record.did == did:
                    return record
            return None

    def list_records(self) -> list[IdentityRecord]:
        with self._lock:
            return list(self._records.values())
