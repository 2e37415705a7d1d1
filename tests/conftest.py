"""Shared pytest fixtures for PLC identity tests.

Provides an in-memory PLC directory served through ``httpx.MockTransport``
so identity flows run end to end without network access.
"""

from __future__ import annotations

import copy
import json
from typing import Any

import httpx
import pytest

from plcid.config import IdentityConfig
from plcid.plc.did import DID
from plcid.plc.directory import DirectoryClient
from plcid.storage import InMemoryIdentityStore

TEST_DIRECTORY_URL = "https://plc.test"
TEST_REPOSITORY_URL = "https://repo.test/wp-json/fair/v1"


class FakeDirectory:
    """In-memory PLC directory.

    Serves ``GET /{did}``, ``GET /{did}/log/last``, ``GET /{did}/log/audit``
    and ``POST /{did}``. Every accepted operation is appended to the DID's
    log exactly as it was posted.
    """

    def __init__(self) -> None:
        self.logs: dict[str, list[dict[str, Any]]] = {}
        self.tombstoned: set[str] = set()
        self.reject_status: int | None = None
        self.requests: list[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def operations(self, did: str) -> list[dict[str, Any]]:
        return self.logs.get(did, [])

    def last(self, did: str) -> dict[str, Any]:
        return self.logs[did][-1]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.lstrip("/").split("/")
        did = parts[0]

        if request.method == "POST" and len(parts) == 1:
            if self.reject_status is not None:
                return httpx.Response(self.reject_status, text="operation rejected")
            self.logs.setdefault(did, []).append(json.loads(request.content))
            return httpx.Response(200, json={})

        if did in self.tombstoned:
            return httpx.Response(410)
        if did not in self.logs:
            return httpx.Response(404, json={"message": f"DID not registered: {did}"})

        if parts[1:] == []:
            return httpx.Response(200, json={"id": did})
        if parts[1:] == ["log", "last"]:
            return httpx.Response(200, json=copy.deepcopy(self.logs[did][-1]))
        if parts[1:] == ["log", "audit"]:
            return httpx.Response(200, json=copy.deepcopy(self.logs[did]))
        return httpx.Response(404)


@pytest.fixture
def fake_directory() -> FakeDirectory:
    """Fresh directory per test."""
    return FakeDirectory()


@pytest.fixture
def identity_config() -> IdentityConfig:
    return IdentityConfig(directory_url=TEST_DIRECTORY_URL, repository_url=TEST_REPOSITORY_URL)


@pytest.fixture
def directory_client(
    fake_directory: FakeDirectory, identity_config: IdentityConfig
) -> DirectoryClient:
    return DirectoryClient.from_config(identity_config, fake_directory.transport)


@pytest.fixture
def identity_store() -> InMemoryIdentityStore:
    return InMemoryIdentityStore()


@pytest.fixture
def identity(
    identity_store: InMemoryIdentityStore,
    directory_client: DirectoryClient,
    identity_config: IdentityConfig,
) -> DID:
    """A freshly created identity whose genesis the fake directory accepted."""
    return DID.create(identity_store, directory_client, identity_config)
