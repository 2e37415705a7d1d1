"""Tests for the PLC directory HTTP client."""

from __future__ import annotations

import httpx
import pytest

from plcid.errors import IdentityNotFoundError, RemoteError
from plcid.plc.directory import DirectoryClient, PublicationStatus

DID = "did:plc:ewvi7nxzyoun6zhxrhs64oiz"
BASE_URL = "https://plc.test"


def _client(handler) -> DirectoryClient:
    return DirectoryClient(BASE_URL, timeout=5.0, transport=httpx.MockTransport(handler))


class TestGetLastOperation:
    """GET {did}/log/last."""

    def test_returns_operation_json(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"type": "plc_operation"})

        assert _client(handler).get_last_operation(DID) == {"type": "plc_operation"}
        assert str(seen[0].url) == f"{BASE_URL}/{DID}/log/last"
        assert seen[0].method == "GET"

    def test_404_is_not_found(self) -> None:
        client = _client(lambda request: httpx.Response(404))
        with pytest.raises(IdentityNotFoundError):
            client.get_last_operation(DID)

    def test_non_200_is_remote_error_with_stage(self) -> None:
        client = _client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(RemoteError) as exc_info:
            client.get_last_operation(DID)
        assert exc_info.value.stage == "fetch-last"
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["body"] == "boom"
        assert exc_info.value.code == "plc:remote/fetch-last"

    def test_invalid_json_is_remote_error(self) -> None:
        client = _client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(RemoteError) as exc_info:
            client.get_last_operation(DID)
        assert exc_info.value.stage == "fetch-last"

    def test_non_object_is_remote_error(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(RemoteError):
            client.get_last_operation(DID)

    def test_network_failure_is_remote_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RemoteError) as exc_info:
            _client(handler).get_last_operation(DID)
        assert "connection refused" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestGetAuditLog:
    """GET {did}/log/audit."""

    def test_unwraps_audit_entries(self) -> None:
        body = [
            {"did": DID, "operation": {"type": "plc_operation", "prev": None}},
            {"type": "plc_operation", "prev": "bafyreiexample"},
        ]
        client = _client(lambda request: httpx.Response(200, json=body))
        assert client.get_audit_log(DID) == [
            {"type": "plc_operation", "prev": None},
            {"type": "plc_operation", "prev": "bafyreiexample"},
        ]

    def test_non_list_is_remote_error(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"type": "plc_operation"}))
        with pytest.raises(RemoteError) as exc_info:
            client.get_audit_log(DID)
        assert exc_info.value.stage == "fetch-audit"


class TestGetStatus:
    """GET {did} maps status codes to publication state."""

    @pytest.mark.parametrize(
        ("status_code", "expected"),
        [
            (200, PublicationStatus.PUBLISHED),
            (404, PublicationStatus.NOT_FOUND),
            (410, PublicationStatus.TOMBSTONED),
            (503, PublicationStatus.UNKNOWN),
        ],
    )
    def test_status_mapping(self, status_code: int, expected: PublicationStatus) -> None:
        client = _client(lambda request: httpx.Response(status_code))
        assert client.get_status(DID) is expected


class TestSubmitOperation:
    """POST {did}."""

    def test_posts_json_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        _client(handler).submit_operation(DID, {"type": "plc_operation", "sig": "abc"})
        assert seen[0].method == "POST"
        assert str(seen[0].url) == f"{BASE_URL}/{DID}"
        assert seen[0].headers["content-type"] == "application/json"

    def test_rejection_carries_response_body(self) -> None:
        client = _client(lambda request: httpx.Response(400, text="Invalid signature"))
        with pytest.raises(RemoteError) as exc_info:
            client.submit_operation(DID, {})
        assert exc_info.value.stage == "submit"
        assert exc_info.value.status_code == 400
        assert "Invalid signature" in exc_info.value.message


def test_base_url_trailing_slash_is_stripped() -> None:
    assert DirectoryClient("https://plc.test/").base_url == "https://plc.test"
