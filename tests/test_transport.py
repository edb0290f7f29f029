# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_jwt

from typing import Any, Callable, List
from unittest.mock import patch

import httpx
import pytest

from coreason_jwt.config import CoreasonJwtSettings
from coreason_jwt.exceptions import JwksFetchError, OversizedResponseError
from coreason_jwt.transport import HttpxJsonFetcher, safe_json_fetch

URL = "https://issuer.example.com/.well-known/jwks.json"


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def fast_settings(**overrides: Any) -> CoreasonJwtSettings:
    return CoreasonJwtSettings(fetch_backoff_initial=0, fetch_backoff_max=0, **overrides)


@pytest.mark.asyncio
async def test_safe_json_fetch_success() -> None:
    async with mock_client(lambda request: httpx.Response(200, json={"keys": []})) as client:
        assert await safe_json_fetch(client, URL, 1024) == {"keys": []}


@pytest.mark.asyncio
async def test_safe_json_fetch_accepts_json_media_types() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["accept"] == "application/json"
        return httpx.Response(
            200, content=b'{"keys": []}', headers={"content-type": "application/jwk-set+json; charset=utf-8"}
        )

    async with mock_client(handler) as client:
        assert await safe_json_fetch(client, URL, 1024) == {"keys": []}


@pytest.mark.asyncio
async def test_safe_json_fetch_non_200() -> None:
    async with mock_client(lambda request: httpx.Response(404, json={})) as client:
        with pytest.raises(JwksFetchError, match="HTTP status 404"):
            await safe_json_fetch(client, URL, 1024)


@pytest.mark.asyncio
async def test_safe_json_fetch_wrong_content_type() -> None:
    async with mock_client(lambda request: httpx.Response(200, text="<html></html>")) as client:
        with pytest.raises(JwksFetchError, match="content type"):
            await safe_json_fetch(client, URL, 1024)


@pytest.mark.asyncio
async def test_safe_json_fetch_oversized() -> None:
    big = {"keys": [{"kty": "RSA", "n": "x" * 200}]}
    async with mock_client(lambda request: httpx.Response(200, json=big)) as client:
        with pytest.raises(OversizedResponseError):
            await safe_json_fetch(client, URL, 100)


@pytest.mark.asyncio
async def test_safe_json_fetch_invalid_json() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b'{"keys": [', headers={"content-type": "application/json"})

    async with mock_client(handler) as client:
        with pytest.raises(JwksFetchError, match="not valid JSON"):
            await safe_json_fetch(client, URL, 1024)


@pytest.mark.asyncio
async def test_safe_json_fetch_duplicate_keys() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b'{"keys": [], "keys": []}', headers={"content-type": "application/json"})

    async with mock_client(handler) as client:
        with pytest.raises(JwksFetchError):
            await safe_json_fetch(client, URL, 1024)


@pytest.mark.asyncio
async def test_fetcher_retries_transport_errors() -> None:
    calls: List[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"keys": []})

    async with mock_client(handler) as client:
        fetcher = HttpxJsonFetcher(client, fast_settings(fetch_attempts=3))
        assert await fetcher.fetch_json(URL) == {"keys": []}

    assert len(calls) == 3


@pytest.mark.asyncio
async def test_fetcher_gives_up_after_all_attempts() -> None:
    calls: List[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        raise httpx.ReadTimeout("timed out", request=request)

    async with mock_client(handler) as client:
        fetcher = HttpxJsonFetcher(client, fast_settings(fetch_attempts=2))
        with pytest.raises(JwksFetchError, match="timed out") as exc_info:
            await fetcher.fetch_json(URL)

    assert len(calls) == 2
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_fetcher_does_not_retry_http_errors() -> None:
    calls: List[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(500, json={})

    async with mock_client(handler) as client:
        fetcher = HttpxJsonFetcher(client, fast_settings())
        with pytest.raises(JwksFetchError, match="HTTP status 500"):
            await fetcher.fetch_json(URL)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_fetcher_backoff() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    settings = CoreasonJwtSettings(fetch_attempts=4, fetch_backoff_initial=0.1, fetch_backoff_max=0.3)
    async with mock_client(handler) as client:
        fetcher = HttpxJsonFetcher(client, settings)
        with patch("coreason_jwt.transport.anyio.sleep") as mock_sleep:
            with pytest.raises(JwksFetchError):
                await fetcher.fetch_json(URL)

    assert [call.args[0] for call in mock_sleep.await_args_list] == [0.1, 0.2, 0.3]


@pytest.mark.asyncio
async def test_internal_client_is_instrumented_and_closed() -> None:
    with patch("coreason_jwt.transport.HTTPXClientInstrumentor") as mock_instrumentor:
        fetcher = HttpxJsonFetcher(settings=CoreasonJwtSettings(http_timeout=2.0))

    mock_instrumentor.return_value.instrument_client.assert_called_once_with(fetcher._client)
    assert fetcher._client.timeout.connect == 2.0

    await fetcher.aclose()
    assert fetcher._client.is_closed


@pytest.mark.asyncio
async def test_external_client_is_left_open() -> None:
    client = mock_client(lambda request: httpx.Response(200, json={}))
    fetcher = HttpxJsonFetcher(client)

    await fetcher.aclose()

    assert not client.is_closed
    await client.aclose()
