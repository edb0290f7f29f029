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
Claim profiles plug provider specifics into the `JwtVerifier`.
"""

from collections.abc import Mapping
from typing import Any, Protocol, TypeVar

from pydantic import ValidationError

from coreason_jwt.exceptions import ConfigurationError
from coreason_jwt.models import IssuerConfig, VerifyProperties

PropertiesT = TypeVar("PropertiesT", bound=VerifyProperties)


class ClaimProfile(Protocol):
    """
    Provider capability used by the verifier.

    Attributes:
        selector: Name of the per-call keyword (and `cache_jwks` identifier) that picks an issuer.
    """

    selector: str

    def derive_issuer_config(self, config: Mapping[str, Any]) -> IssuerConfig:
        """Builds an issuer config from caller input."""
        ...

    def issuer_for(self, identifier: str) -> str:
        """Maps the selector value to an issuer."""
        ...

    def merge_properties(self, base: VerifyProperties, overrides: Mapping[str, Any]) -> VerifyProperties:
        """Applies per-call overrides on top of an issuer's properties."""
        ...

    def validate_domain_claims(self, payload: dict[str, Any], properties: VerifyProperties) -> None:
        """Checks provider specific claims. Only called after the signature is verified."""
        ...


def build_properties(model: type[PropertiesT], values: Mapping[str, Any]) -> PropertiesT:
    """
    Validates verify properties, turning pydantic errors into ConfigurationError.
    """
    try:
        return model(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid verify properties: {e}") from e


def merge_properties(base: PropertiesT, overrides: Mapping[str, Any]) -> PropertiesT:
    try:
        return base.merged_with(dict(overrides))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid verify properties: {e}") from e


def default_jwks_uri(issuer: str) -> str:
    return f"{issuer.rstrip('/')}/.well-known/jwks.json"


class GenericProfile:
    """
    Any OIDC compliant issuer: config keys are `issuer`, optional `jwks_uri`, and `VerifyProperties` fields.
    """

    selector = "issuer"

    def derive_issuer_config(self, config: Mapping[str, Any]) -> IssuerConfig:
        if isinstance(config, IssuerConfig):
            return config
        values = dict(config)
        issuer = values.pop("issuer", None)
        if not isinstance(issuer, str) or not issuer:
            raise ConfigurationError("issuer must be provided")
        jwks_uri = values.pop("jwks_uri", None) or default_jwks_uri(issuer)
        return IssuerConfig(
            issuer=issuer,
            jwks_uri=jwks_uri,
            properties=build_properties(VerifyProperties, values),
        )

    def issuer_for(self, identifier: str) -> str:
        return identifier

    def merge_properties(self, base: VerifyProperties, overrides: Mapping[str, Any]) -> VerifyProperties:
        return merge_properties(base, overrides)

    def validate_domain_claims(self, payload: dict[str, Any], properties: VerifyProperties) -> None:
        return None
