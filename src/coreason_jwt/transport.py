# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_jwt

"""
JSON-over-HTTPS fetching for JWKS documents.
"""

from typing import Any, Protocol

import anyio
import httpx
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from coreason_jwt.config import CoreasonJwtSettings
from coreason_jwt.decomposer import safe_json_parse
from coreason_jwt.exceptions import JwksFetchError, OversizedResponseError
from coreason_jwt.utils.logger import logger


class JsonFetcher(Protocol):
    """Fetches a JSON document. Implementations raise JwksFetchError on failure."""

    async def fetch_json(self, uri: str) -> Any: ...


def _is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def safe_json_fetch(client: httpx.AsyncClient, url: str, max_bytes: int) -> Any:
    """
    GETs `url` and parses the body as JSON, reading at most `max_bytes`.

    Args:
        client: The async HTTP client to use.
        url: The URL to fetch.
        max_bytes: Largest body accepted.

    Returns:
        Any: The parsed JSON document.

    Raises:
        OversizedResponseError: If the body exceeds `max_bytes`.
        JwksFetchError: On a non-200 status, a non-JSON content type or an unparseable body.
        httpx.TransportError: On connection level failures (left to the caller to retry).
    """
    async with client.stream("GET", url, headers={"Accept": "application/json"}) as response:
        if response.status_code != 200:
            raise JwksFetchError(f"Failed to fetch {url}: HTTP status {response.status_code}")

        content_type = response.headers.get("content-type", "")
        if not _is_json_content_type(content_type):
            raise JwksFetchError(f"Failed to fetch {url}: unexpected content type '{content_type}'")

        declared = response.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > max_bytes:
            raise OversizedResponseError(f"Response from {url} exceeds {max_bytes} bytes")

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > max_bytes:
                raise OversizedResponseError(f"Response from {url} exceeds {max_bytes} bytes")

    try:
        return safe_json_parse(bytes(body))
    except (ValueError, RecursionError) as e:
        raise JwksFetchError(f"Response from {url} is not valid JSON: {e}") from e


class HttpxJsonFetcher:
    """
    Default `JsonFetcher` backed by httpx.

    Transport errors are retried with exponential backoff; HTTP status, content type
    and size violations fail immediately.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        settings: CoreasonJwtSettings | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            client: External async client (optional). If not provided, an instrumented client is created
                and closed by `aclose`.
            settings: Fetch settings. Defaults to `CoreasonJwtSettings()` (read from the environment).
        """
        self.settings = settings or CoreasonJwtSettings()
        self._internal_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=self.settings.http_timeout, follow_redirects=False)
            HTTPXClientInstrumentor().instrument_client(client)
        self._client = client

    async def fetch_json(self, uri: str) -> Any:
        attempts = self.settings.fetch_attempts
        for attempt in range(attempts):
            try:
                return await safe_json_fetch(self._client, uri, self.settings.max_response_bytes)
            except httpx.TransportError as e:
                if attempt == attempts - 1:
                    raise JwksFetchError(f"Failed to fetch {uri}: {e}") from e
                sleep_time = min(self.settings.fetch_backoff_initial * (2**attempt), self.settings.fetch_backoff_max)
                logger.warning(f"Fetching {uri} failed ({e!r}), retrying in {sleep_time:.2f}s")
                await anyio.sleep(sleep_time)

        raise JwksFetchError(f"Failed to fetch {uri}")  # pragma: no cover

    async def aclose(self) -> None:
        if self._internal_client:
            await self._client.aclose()
