from __future__ import annotations

import asyncio

import httpx
import pytest

from secretref.domain.error_codes import ErrorCode
from secretref.domain.models import SecretFetchRequest
from secretref.errors import SecretFetchError
from secretref.infra.secrets.secrets_manager_client import SecretsManagerClient


def make_client(transport: httpx.AsyncBaseTransport, *, retries: int = 0) -> SecretsManagerClient:
    return SecretsManagerClient(
        baseUrl="https://sm.local/",
        apiKey="key-123",
        retries=retries,
        retryBackoffSeconds=0,
        transport=transport,
    )


async def fetch(client: SecretsManagerClient, request: SecretFetchRequest):
    try:
        return await client.fetch_secret(request)
    finally:
        await client.aclose()


def test_fetch_secret_returns_body_headers_and_status():
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/v1/secrets/kv/sec-42"
        assert request.headers["Authorization"] == "Bearer key-123"
        return httpx.Response(200, json={"resources": [{"secret_data": {"payload": "x"}}]}, headers={"x-request-id": "r1"})

    client = make_client(httpx.MockTransport(responder))

    result = asyncio.run(fetch(client, SecretFetchRequest(secret_type="kv", id="sec-42")))

    assert result.status_code == 200
    assert result.status_text == "OK"
    assert result.body == {"resources": [{"secret_data": {"payload": "x"}}]}
    assert result.headers["x-request-id"] == "r1"


def test_fetch_secret_escapes_path_segments():
    seen = {}

    def responder(request: httpx.Request) -> httpx.Response:
        seen["raw_path"] = request.url.raw_path
        return httpx.Response(200, json={})

    client = make_client(httpx.MockTransport(responder))

    asyncio.run(fetch(client, SecretFetchRequest(secret_type="kv", id="a/b")))

    assert seen["raw_path"] == b"/api/v1/secrets/kv/a%2Fb"


def test_fetch_secret_raises_on_not_found():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not found")

    client = make_client(httpx.MockTransport(responder))

    with pytest.raises(SecretFetchError) as exc:
        asyncio.run(fetch(client, SecretFetchRequest(secret_type="kv", id="missing")))

    assert exc.value.code == "SECRET_NOT_FOUND"
    assert exc.value.status_code == 404
    assert exc.value.body_snippet == "not found"


def test_fetch_secret_retries_on_500_and_succeeds():
    calls = {"count": 0}

    def responder(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(500, text="fail")
        return httpx.Response(200, json={"ok": True})

    client = make_client(httpx.MockTransport(responder), retries=1)

    result = asyncio.run(fetch(client, SecretFetchRequest(secret_type="kv", id="sec-1")))

    assert result.body == {"ok": True}
    assert client.getRetryAttempts() == 1


def test_fetch_secret_raises_network_error_after_retries():
    def responder(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom")

    client = make_client(httpx.MockTransport(responder), retries=1)

    with pytest.raises(SecretFetchError) as exc:
        asyncio.run(fetch(client, SecretFetchRequest(secret_type="kv", id="sec-1")))

    assert exc.value.code == "NETWORK_ERROR"
    assert client.getRetryAttempts() == 1


def test_error_codes_cover_client_failures_only():
    assert {code.value for code in ErrorCode} == {
        "NETWORK_ERROR",
        "HTTP_ERROR",
        "UNAUTHORIZED",
        "FORBIDDEN",
        "SECRET_NOT_FOUND",
    }
    assert [ErrorCode.from_status(s) for s in (401, 403, 404, 500)] == [
        ErrorCode.UNAUTHORIZED,
        ErrorCode.FORBIDDEN,
        ErrorCode.SECRET_NOT_FOUND,
        ErrorCode.HTTP_ERROR,
    ]
