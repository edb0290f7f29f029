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
Amazon Cognito claim profile.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any, Final

from coreason_jwt.assertions import (
    assert_string_array_contains_string,
    assert_string_arrays_overlap,
    assert_string_equals,
)
from coreason_jwt.exceptions import (
    ConfigurationError,
    InvalidClientIdError,
    InvalidGroupError,
    InvalidTokenUseError,
)
from coreason_jwt.jwks_cache import JwksCache
from coreason_jwt.models import COGNITO_TOKEN_USES, CognitoVerifyProperties, IssuerConfig, VerifyProperties
from coreason_jwt.policy import DISABLED
from coreason_jwt.profiles import build_properties, merge_properties
from coreason_jwt.verifier import JwtVerifier

# Region shape is deliberately loose, real region names may change
_USER_POOL_ID_PATTERN: Final = re.compile(r"(?P<region>(?:\w+-)?\w+-\w+-\d)_\w+")

# Derived by the profile, never taken from the caller
_DERIVED_KEYS: Final = ("issuer", "jwks_uri", "audience")


class CognitoProfile:
    """
    Cognito user pools: issuer and JWKS URI come from the user pool id, and the audience is
    checked as client id (aud for id tokens, client_id for access tokens).
    """

    selector = "user_pool_id"

    @staticmethod
    def parse_user_pool_id(user_pool_id: str) -> tuple[str, str]:
        """
        Derives the issuer and JWKS URI of a user pool.

        Args:
            user_pool_id: e.g. "eu-west-1_AbCdEfGhI".

        Returns:
            tuple[str, str]: The issuer and the JWKS URI.

        Raises:
            ConfigurationError: If the user pool id is malformed.
        """
        match = _USER_POOL_ID_PATTERN.fullmatch(user_pool_id) if isinstance(user_pool_id, str) else None
        if not match:
            raise ConfigurationError(f"Invalid Cognito User Pool ID: {user_pool_id}")
        issuer = f"https://cognito-idp.{match.group('region')}.amazonaws.com/{user_pool_id}"
        return issuer, f"{issuer}/.well-known/jwks.json"

    def derive_issuer_config(self, config: Mapping[str, Any]) -> IssuerConfig:
        values = dict(config)
        for key in _DERIVED_KEYS:
            if key in values:
                raise ConfigurationError(f"{key} is derived from the user pool id and cannot be set")
        if "user_pool_id" not in values:
            raise ConfigurationError("user_pool_id must be provided")
        issuer, jwks_uri = self.parse_user_pool_id(values.pop("user_pool_id"))
        return IssuerConfig(
            issuer=issuer,
            jwks_uri=jwks_uri,
            # The client id check replaces the generic audience check
            properties=build_properties(CognitoVerifyProperties, {**values, "audience": DISABLED}),
        )

    def issuer_for(self, identifier: str) -> str:
        return self.parse_user_pool_id(identifier)[0]

    def merge_properties(self, base: VerifyProperties, overrides: Mapping[str, Any]) -> VerifyProperties:
        if "audience" in overrides:
            raise ConfigurationError("audience cannot be set for Cognito, use client_id instead")
        return merge_properties(base, overrides)

    def validate_domain_claims(self, payload: dict[str, Any], properties: VerifyProperties) -> None:
        """
        Validates the Cognito specific claims.

        Raises:
            InvalidGroupError: If none of the required groups is in cognito:groups.
            InvalidTokenUseError: If token_use is not "id"/"access", or not the expected one.
            InvalidClientIdError: If the token was issued to another app client.
            ConfigurationError: If token_use or client_id were left unset.
        """
        if not isinstance(properties, CognitoVerifyProperties):
            raise ConfigurationError("Cognito validation requires CognitoVerifyProperties")

        groups = properties.groups.resolve_optional()
        if groups is not None:
            assert_string_arrays_overlap("Cognito group", payload.get("cognito:groups"), groups, InvalidGroupError)

        token_use = payload.get("token_use")
        assert_string_array_contains_string("Token use", token_use, COGNITO_TOKEN_USES, InvalidTokenUseError)
        expected_token_use = properties.token_use.resolve("token_use")
        if expected_token_use is not None:
            (expected,) = expected_token_use
            assert_string_equals("Token use", token_use, expected, InvalidTokenUseError)

        client_ids = properties.client_id.resolve("client_id")
        if client_ids is not None:
            if token_use == "id":
                assert_string_arrays_overlap('Client ID ("audience")', payload.get("aud"), client_ids, InvalidClientIdError)
            else:
                assert_string_arrays_overlap("Client ID", payload.get("client_id"), client_ids, InvalidClientIdError)


def create_cognito_verifier(
    configs: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None,
    *,
    jwks_cache: JwksCache | None = None,
    **config: Any,
) -> JwtVerifier:
    """
    Creates a verifier for tokens issued by one or more Cognito user pools.

    Example:
        verifier = create_cognito_verifier(user_pool_id="eu-west-1_AbCdEfGhI", token_use="access", client_id="abc")
        payload = await verifier.verify(token)

    Args:
        configs: One config mapping or a list of them (one per user pool).
        jwks_cache: Shared JWKS cache (optional).
        **config: A single config given as keyword arguments.

    Raises:
        ConfigurationError: If a config is invalid.
    """
    if configs is None:
        configs = config
    elif config:
        raise ConfigurationError("Pass either configs or keyword arguments, not both")
    return JwtVerifier(configs, profile=CognitoProfile(), jwks_cache=jwks_cache)
