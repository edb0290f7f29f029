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
Per-issuer cache of the provider's published JWKS.
"""

import time
from typing import Any

import anyio
from pydantic import BaseModel, ConfigDict, ValidationError

from coreason_jwt.exceptions import (
    JwksFetchError,
    JwksValidationError,
    SigningKeyNotCachedError,
    SigningKeyNotFoundError,
)
from coreason_jwt.models import Jwk, Jwks
from coreason_jwt.transport import HttpxJsonFetcher, JsonFetcher
from coreason_jwt.utils.logger import logger


def parse_jwks(document: Any) -> Jwks:
    """
    Validates a JWKS document.

    Args:
        document: A parsed JSON document or an existing `Jwks`.

    Returns:
        Jwks: The key set.

    Raises:
        JwksValidationError: If the document is not an object with a `keys` array of JWKs.
    """
    if isinstance(document, Jwks):
        return document
    if not isinstance(document, dict):
        raise JwksValidationError("JWKS is not a JSON object")
    if not isinstance(document.get("keys"), list):
        raise JwksValidationError("JWKS does not include a keys array")
    try:
        return Jwks.model_validate(document)
    except ValidationError as e:
        raise JwksValidationError(f"Invalid JWKS: {e}") from e


class KeySetCacheEntry(BaseModel):
    """One issuer's key set and when it was installed."""

    model_config = ConfigDict(frozen=True)

    issuer: str
    jwks: Jwks
    fetched_at: float


class _PendingFetch:
    """The single in-flight fetch for an issuer, shared by every caller waiting on it."""

    def __init__(self) -> None:
        self.done = anyio.Event()
        self.result: Jwks | None = None
        self.error: Exception | None = None


class JwksCache:
    """
    Caches JWKS per issuer and resolves signing keys by kid.

    Entries are replaced as a whole, so readers see either the old or the new key set.
    Keys are refetched lazily, only when a kid cannot be found. Concurrent misses for
    the same issuer share one fetch.
    """

    def __init__(self, fetcher: JsonFetcher | None = None) -> None:
        """
        Initialize the cache.

        Args:
            fetcher: Fetches JWKS documents. Defaults to an `HttpxJsonFetcher`, created on first use.
        """
        self._fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self._entries: dict[str, KeySetCacheEntry] = {}
        self._pending: dict[str, _PendingFetch] = {}

    @property
    def fetcher(self) -> JsonFetcher:
        if self._fetcher is None:
            self._fetcher = HttpxJsonFetcher()
        return self._fetcher

    def get_entry(self, issuer: str) -> KeySetCacheEntry | None:
        return self._entries.get(issuer)

    def seed(self, issuer: str, jwks: Jwks | dict[str, Any]) -> None:
        """
        Installs a key set for `issuer` without fetching, replacing any existing one.

        Raises:
            JwksValidationError: If `jwks` is not a valid JWKS.
        """
        self._install(issuer, parse_jwks(jwks))

    def _install(self, issuer: str, jwks: Jwks) -> None:
        self._entries[issuer] = KeySetCacheEntry(issuer=issuer, jwks=jwks, fetched_at=time.time())

    def resolve_sync(self, issuer: str, kid: str) -> Jwk:
        """
        Returns the cached key `kid` of `issuer`. Never performs I/O.

        Raises:
            SigningKeyNotCachedError: If there is no key set for the issuer or it has no such kid.
        """
        entry = self._entries.get(issuer)
        if entry is None:
            raise SigningKeyNotCachedError(f"JWKS for issuer {issuer} not yet available in cache")
        jwk = entry.jwks.find(kid)
        if jwk is None:
            raise SigningKeyNotCachedError(f"JWK for kid {kid} not yet available in cache")
        return jwk

    async def resolve(self, issuer: str, kid: str, jwks_uri: str) -> Jwk:
        """
        Returns the key `kid` of `issuer`, fetching the JWKS from `jwks_uri` once if it is not cached.

        Raises:
            SigningKeyNotFoundError: If the kid is absent even after refetching.
            JwksFetchError: If the JWKS cannot be fetched or is invalid.
        """
        entry = self._entries.get(issuer)
        if entry is not None:
            jwk = entry.jwks.find(kid)
            if jwk is not None:
                return jwk

        jwks = await self._fetch_coalesced(issuer, jwks_uri)
        jwk = jwks.find(kid)
        if jwk is None:
            raise SigningKeyNotFoundError(f"JWK for kid {kid} not found in the JWKS of {issuer}")
        return jwk

    async def _fetch_coalesced(self, issuer: str, jwks_uri: str) -> Jwks:
        pending = self._pending.get(issuer)
        while pending is not None:
            await pending.done.wait()
            if pending.result is not None:
                return pending.result
            if pending.error is not None:
                raise pending.error
            # The task running the fetch was cancelled, so the next waiter takes over
            pending = self._pending.get(issuer)

        pending = _PendingFetch()
        self._pending[issuer] = pending
        try:
            jwks = await self._fetch(issuer, jwks_uri)
            pending.result = jwks
            return jwks
        except Exception as e:
            pending.error = e
            raise
        finally:
            del self._pending[issuer]
            pending.done.set()

    async def _fetch(self, issuer: str, jwks_uri: str) -> Jwks:
        logger.info(f"Fetching JWKS for issuer {issuer} from {jwks_uri}")
        try:
            document = await self.fetcher.fetch_json(jwks_uri)
        except JwksFetchError:
            raise
        except Exception as e:
            raise JwksFetchError(f"Failed to fetch JWKS from {jwks_uri}: {e}") from e

        try:
            jwks = parse_jwks(document)
        except JwksValidationError as e:
            raise JwksFetchError(f"Invalid JWKS from {jwks_uri}: {e}") from e

        self._install(issuer, jwks)
        logger.debug(f"Cached {len(jwks.keys)} keys for issuer {issuer}")
        return jwks

    async def aclose(self) -> None:
        """Closes the default fetcher, if this cache created one."""
        if self._owns_fetcher and isinstance(self._fetcher, HttpxJsonFetcher):
            await self._fetcher.aclose()
