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
Data models for the coreason-jwt package.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coreason_jwt.policy import UNSPECIFIED, Policy

COGNITO_TOKEN_USES = frozenset(["id", "access"])


class DecomposedJwt(BaseModel):
    """
    A JWT split into its parts. Nothing in here has been verified yet.

    The base64url segments are kept verbatim: the signature is checked over
    ``header_b64 + "." + payload_b64``, never over re-serialized JSON.
    """

    model_config = ConfigDict(frozen=True)

    header: dict[str, Any]
    header_b64: str
    payload: dict[str, Any]
    payload_b64: str
    signature_b64: str

    @property
    def signing_input(self) -> bytes:
        return f"{self.header_b64}.{self.payload_b64}".encode("ascii")


class Jwk(BaseModel):
    """
    A JSON Web Key. Key material (n, e, x, y, crv, ...) is kept as extra fields.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    kty: str = Field(..., description="Key type, e.g. RSA or EC.")
    kid: str | None = Field(default=None, description="Key identifier.")
    alg: str | None = Field(default=None, description="Algorithm the key is meant for.")
    use: str | None = Field(default=None, description="Public key use, 'sig' for signing keys.")

    def as_dict(self) -> dict[str, Any]:
        """Returns the key as a plain JWK dictionary."""
        return self.model_dump(exclude_none=True)


class Jwks(BaseModel):
    """
    A JSON Web Key Set. Replaced as a whole, never merged.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    keys: tuple[Jwk, ...]

    def find(self, kid: str) -> Jwk | None:
        for key in self.keys:
            if key.kid == kid:
                return key
        return None


class VerifyProperties(BaseModel):
    """
    Verification policy for one issuer; per-call properties override these.

    Attributes:
        audience: Allowed audience(s). None disables the check; leaving it unset is an error at verify time.
        scope: Scopes of which at least one must be present. Unset or None skips the check.
        grace_seconds: Clock skew tolerance applied to exp and nbf.
        include_raw_jwt_in_errors: Attach the decomposed token to claim errors raised after signature verification.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    audience: Policy = UNSPECIFIED
    scope: Policy = UNSPECIFIED
    grace_seconds: float = Field(default=0, ge=0)
    include_raw_jwt_in_errors: bool = False

    @field_validator("audience", "scope", mode="before")
    @classmethod
    def coerce_policy(cls, v: Any) -> Policy:
        return Policy.coerce(v)

    def merged_with(self, overrides: dict[str, Any]) -> "VerifyProperties":
        """
        Returns new properties with `overrides` applied on top of the explicitly set fields.
        """
        merged = {name: getattr(self, name) for name in self.model_fields_set}
        merged.update(overrides)
        return type(self)(**merged)


class CognitoVerifyProperties(VerifyProperties):
    """
    Verification policy for Amazon Cognito tokens.

    Attributes:
        token_use: "id" or "access". None accepts both.
        client_id: Allowed app client id(s). None disables the check.
        groups: Cognito groups of which at least one must be present. Unset or None skips the check.
    """

    token_use: Policy = UNSPECIFIED
    client_id: Policy = UNSPECIFIED
    groups: Policy = UNSPECIFIED

    @field_validator("token_use", "client_id", "groups", mode="before")
    @classmethod
    def coerce_cognito_policy(cls, v: Any) -> Policy:
        return Policy.coerce(v)

    @model_validator(mode="after")
    def validate_token_use(self) -> "CognitoVerifyProperties":
        if self.token_use.is_required and not self.token_use.values <= COGNITO_TOKEN_USES:
            raise ValueError(f"token_use must be one of {sorted(COGNITO_TOKEN_USES)} or None")
        if self.token_use.is_required and len(self.token_use.values) != 1:
            raise ValueError("token_use takes a single value")
        return self


class IssuerConfig(BaseModel):
    """
    A trusted issuer: where its keys live and the default policy for its tokens.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    issuer: str = Field(..., min_length=1, description="The expected iss claim.")
    jwks_uri: str = Field(..., min_length=1, description="The URL of the issuer's JWKS.")
    properties: VerifyProperties = Field(default_factory=VerifyProperties)
