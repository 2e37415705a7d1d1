"""Identity record storage backends.

- InMemoryIdentityStore (tests, throwaway tooling)
- SQLiteIdentityStore (persistent)

Factory:
- create_identity_store() builds an IdentityStore from PLCID_STORAGE_BACKEND
  and PLCID_STORAGE_PATH (default: memory, plcid_state.db; the CLI defaults to sqlite).
"""

import os
from pathlib import Path

from plcid.errors import ConfigurationError
from plcid.storage.base import IdentityRecord, IdentityStore
from plcid.storage.memory import InMemoryIdentityStore
from plcid.storage.sqlite import DEFAULT_DB_PATH, SQLiteIdentityStore

PLCID_STORAGE_BACKEND_ENV = "PLCID_STORAGE_BACKEND"
PLCID_STORAGE_PATH_ENV = "PLCID_STORAGE_PATH"


def create_identity_store(default_backend: str = "memory") -> IdentityStore:
    """Create an IdentityStore from environment.

    PLCID_STORAGE_BACKEND falls back to ``default_backend`` when unset;
    both variables are read on every call.

    Raises:
        ConfigurationError: If the backend is not "memory" or "sqlite".
    """
    backend = os.environ.get(PLCID_STORAGE_BACKEND_ENV, default_backend).strip().lower()
    path = os.environ.get(PLCID_STORAGE_PATH_ENV, DEFAULT_DB_PATH).strip()

    if backend == "memory":
        return InMemoryIdentityStore()
    if backend == "sqlite":
        return SQLiteIdentityStore(db_path=Path(path))
    raise ConfigurationError(
        "storage_backend",
        f"Unknown {PLCID_STORAGE_BACKEND_ENV}={backend!r}. Use 'memory' or 'sqlite'.",
    )


__all__ = [
    "IdentityRecord",
    "IdentityStore",
    "InMemoryIdentityStore",
    "SQLiteIdentityStore",
    "PLCID_STORAGE_BACKEND_ENV",
    "PLCID_STORAGE_PATH_ENV",
    "create_identity_store",
]
