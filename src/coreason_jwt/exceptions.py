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
Custom exceptions for the coreason-jwt package.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from coreason_jwt.models import DecomposedJwt


class CoreasonJwtError(Exception):
    """Base exception for all coreason-jwt errors."""


class ConfigurationError(CoreasonJwtError, ValueError):
    """Raised on caller misuse: missing option, unregistered issuer, malformed user pool id."""


class MalformedTokenError(CoreasonJwtError, ValueError):
    """Raised when the token is not a structurally valid JWT."""


@dataclass(frozen=True)
class FailedAssertion:
    """The claim value that was found and the value(s) that were expected."""

    actual: Any
    expected: Any


class JwtInvalidClaimError(CoreasonJwtError):
    """
    Raised when a claim violates the caller's policy.

    Attributes:
        failed_assertion: The offending claim value and the expected value(s), if known.
        raw_jwt: The decomposed token, only set on errors produced by `with_raw_jwt`.
    """

    def __init__(
        self,
        message: str,
        failed_assertion: FailedAssertion | None = None,
        raw_jwt: DecomposedJwt | None = None,
    ) -> None:
        super().__init__(message)
        self.failed_assertion = failed_assertion
        self.raw_jwt = raw_jwt

    def with_raw_jwt(self, raw_jwt: DecomposedJwt) -> JwtInvalidClaimError:
        """
        Returns a copy of this error that carries the decomposed token.

        The original error is left untouched.
        """
        enriched = copy.copy(self)
        enriched.raw_jwt = raw_jwt
        return enriched


class TokenExpiredError(JwtInvalidClaimError):
    """Raised when the token's exp claim is in the past."""


class TokenNotYetValidError(JwtInvalidClaimError):
    """Raised when the token's nbf claim is in the future."""


class InvalidIssuerError(JwtInvalidClaimError):
    """Raised when the token's iss claim is not an allowed issuer."""


class InvalidAudienceError(JwtInvalidClaimError):
    """Raised when the token's aud claim does not overlap the allowed audience."""


class InvalidScopeError(JwtInvalidClaimError):
    """Raised when the token's scope claim does not overlap the required scopes."""


class InvalidGroupError(JwtInvalidClaimError):
    """Raised when the token's cognito:groups claim does not overlap the required groups."""


class InvalidTokenUseError(JwtInvalidClaimError):
    """Raised when the token's token_use claim is not "id"/"access" or not the expected one."""


class InvalidClientIdError(JwtInvalidClaimError):
    """Raised when the token was not issued to an allowed client id."""


class TrustChainError(CoreasonJwtError):
    """Base for failures resolving the signing key or checking the signature."""


class MissingKeyIdError(TrustChainError):
    """Raised when the token header carries no kid."""


class SigningKeyNotCachedError(TrustChainError):
    """Raised by synchronous verification when the signing key is not in the cache."""


class SigningKeyNotFoundError(TrustChainError):
    """Raised when the signing key is still absent after refetching the JWKS."""


class InvalidAlgorithmError(TrustChainError):
    """Raised when the token's alg is unsupported or incompatible with the signing key."""


class InvalidSignatureError(TrustChainError):
    """Raised when the token's signature does not verify."""


class JwksValidationError(CoreasonJwtError):
    """Raised when a JWKS document does not have the expected shape."""


class JwksFetchError(CoreasonJwtError):
    """Raised when the JWKS cannot be fetched or parsed."""


class OversizedResponseError(JwksFetchError):
    """Raised when an HTTP response is too large."""
