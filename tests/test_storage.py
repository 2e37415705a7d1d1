"""Tests for identity record stores and the storage factory."""

from __future__ import annotations

from pathlib import Path

import pytest

from plcid.errors import ConfigurationError
from plcid.storage import (
    IdentityRecord,
    IdentityStore,
    InMemoryIdentityStore,
    SQLiteIdentityStore,
    create_identity_store,
)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Isolated DB file per test."""
    return tmp_path / "test_plcid.db"


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, db_path: Path) -> IdentityStore:
    if request.param == "memory":
        return InMemoryIdentityStore()
    return SQLiteIdentityStore(db_path=db_path)


def _record(did: str = "did:plc:aaaaaaaaaaaaaaaaaaaaaaaa") -> IdentityRecord:
    return IdentityRecord(
        did=did,
        rotation_keys=["z42tkey1"],
        verification_keys=["z3u2key1", "z3u2key2"],
    )


class TestIdentityStore:
    """Behavior shared by every IdentityStore implementation."""

    def test_conforms_to_protocol(self, store: IdentityStore) -> None:
        assert isinstance(store, IdentityStore)

    def test_save_assigns_handle(self, store: IdentityStore) -> None:
        handle = store.save(_record())
        assert handle
        loaded = store.get(handle)
        assert loaded is not None
        assert loaded.handle == handle
        assert loaded.verification_keys == ["z3u2key1", "z3u2key2"]

    def test_save_with_handle_overwrites(self, store: IdentityStore) -> None:
        handle = store.save(_record())
        updated = _record().model_copy(update={"handle": handle, "verification_keys": ["z3u2key3"]})
        assert store.save(updated) == handle
        assert store.get(handle).verification_keys == ["z3u2key3"]
        assert len(store.list_records()) == 1

    def test_find_by_did(self, store: IdentityStore) -> None:
        store.save(_record("did:plc:aaaaaaaaaaaaaaaaaaaaaaaa"))
        store.save(_record("did:plc:bbbbbbbbbbbbbbbbbbbbbbbb"))
        found = store.find_by_did("did:plc:bbbbbbbbbbbbbbbbbbbbbbbb")
        assert found is not None
        assert found.did == "did:plc:bbbbbbbbbbbbbbbbbbbbbbbb"
        assert store.find_by_did("did:plc:cccccccccccccccccccccccc") is None

    def test_get_missing_returns_none(self, store: IdentityStore) -> None:
        assert store.get("missing") is None

    def test_list_records_in_insertion_order(self, store: IdentityStore) -> None:
        store.save(_record("did:plc:aaaaaaaaaaaaaaaaaaaaaaaa"))
        store.save(_record("did:plc:bbbbbbbbbbbbbbbbbbbbbbbb"))
        assert [r.did for r in store.list_records()] == [
            "did:plc:aaaaaaaaaaaaaaaaaaaaaaaa",
            "did:plc:bbbbbbbbbbbbbbbbbbbbbbbb",
        ]


class TestSQLiteIdentityStore:
    """Persistence across store instances."""

    def test_survives_new_instance(self, db_path: Path) -> None:
        handle = SQLiteIdentityStore(db_path=db_path).save(_record())
        reopened = SQLiteIdentityStore(db_path=db_path)
        assert reopened.get(handle).rotation_keys == ["z42tkey1"]


class TestCreateIdentityStore:
    """PLCID_STORAGE_BACKEND selects the backend."""

    def test_default_returns_in_memory(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PLCID_STORAGE_BACKEND", raising=False)
        assert isinstance(create_identity_store(), InMemoryIdentityStore)

    def test_sqlite_uses_path(self, monkeypatch: pytest.MonkeyPatch, db_path: Path) -> None:
        monkeypatch.setenv("PLCID_STORAGE_BACKEND", "SQLite")
        monkeypatch.setenv("PLCID_STORAGE_PATH", str(db_path))
        store = create_identity_store()
        assert isinstance(store, SQLiteIdentityStore)
        assert store._db_path == db_path

    def test_unknown_backend_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLCID_STORAGE_BACKEND", "redis")
        with pytest.raises(ConfigurationError, match="redis") as exc_info:
            create_identity_store()
        assert exc_info.value.setting == "storage_backend"

    def test_default_backend_applies_when_unset(
        self, monkeypatch: pytest.MonkeyPatch, db_path: Path
    ) -> None:
        monkeypatch.delenv("PLCID_STORAGE_BACKEND", raising=False)
        monkeypatch.setenv("PLCID_STORAGE_PATH", str(db_path))
        store = create_identity_store(default_backend="sqlite")
        assert isinstance(store, SQLiteIdentityStore)
        assert store._db_path == db_path

    def test_environment_overrides_default_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLCID_STORAGE_BACKEND", "memory")
        assert isinstance(create_identity_store(default_backend="sqlite"), InMemoryIdentityStore)
