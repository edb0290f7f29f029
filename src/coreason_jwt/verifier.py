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
JwtVerifier: verifies JWTs issued by one or more trusted issuers.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from coreason_jwt.claims import validate_jwt_fields
from coreason_jwt.decomposer import decompose_unverified_jwt
from coreason_jwt.exceptions import (
    ConfigurationError,
    CoreasonJwtError,
    JwtInvalidClaimError,
    MissingKeyIdError,
    TrustChainError,
)
from coreason_jwt.jwks_cache import JwksCache
from coreason_jwt.models import DecomposedJwt, IssuerConfig, Jwks, VerifyProperties
from coreason_jwt.profiles import ClaimProfile, GenericProfile
from coreason_jwt.signature import verify_signature_against_jwk
from coreason_jwt.utils.logger import logger

tracer = trace.get_tracer(__name__)

ConfigInput = Mapping[str, Any] | IssuerConfig
Configs = ConfigInput | Sequence[ConfigInput]


def _as_config_list(configs: Configs) -> list[ConfigInput]:
    if isinstance(configs, (Mapping, IssuerConfig)):
        return [configs]
    if isinstance(configs, Sequence) and not isinstance(configs, (str, bytes)):
        if not configs:
            raise ConfigurationError("At least one issuer config must be provided")
        return list(configs)
    raise ConfigurationError(f"Invalid issuer config: {configs!r}")


class JwtVerifier:
    """
    Verifies JWTs: structure, generic claims, signing key, signature, then provider claims.

    The payload is only returned once every check has passed. Provider specifics come
    from the `ClaimProfile`; `GenericProfile` serves any OIDC issuer.

    Attributes:
        profile (ClaimProfile): The claim profile.
        jwks_cache (JwksCache): The JWKS cache, may be shared between verifiers.
    """

    def __init__(
        self,
        configs: Configs,
        profile: ClaimProfile | None = None,
        jwks_cache: JwksCache | None = None,
    ) -> None:
        """
        Initialize the JwtVerifier.

        Args:
            configs: One issuer config or a list of them.
            profile: The claim profile. Defaults to `GenericProfile`.
            jwks_cache: The JWKS cache. If not provided, a private cache is created and closed by `aclose`.

        Raises:
            ConfigurationError: If a config is invalid or an issuer is configured twice.
        """
        self.profile: ClaimProfile = profile or GenericProfile()
        self._owns_cache = jwks_cache is None
        self.jwks_cache = jwks_cache or JwksCache()

        self._issuers: dict[str, IssuerConfig] = {}
        for config in _as_config_list(configs):
            issuer_config = self.profile.derive_issuer_config(config)  # type: ignore[arg-type]
            if issuer_config.issuer in self._issuers:
                raise ConfigurationError(f"issuer {issuer_config.issuer} supplied multiple times")
            self._issuers[issuer_config.issuer] = issuer_config

    @classmethod
    def create(
        cls,
        configs: Configs | None = None,
        *,
        jwks_cache: JwksCache | None = None,
        **config: Any,
    ) -> "JwtVerifier":
        """
        Creates a verifier for generic OIDC issuers.

        Example:
            verifier = JwtVerifier.create(issuer="https://idp.example.com/", audience="my-api")

        Raises:
            ConfigurationError: If a config is invalid.
        """
        if configs is None:
            configs = config
        elif config:
            raise ConfigurationError("Pass either configs or keyword arguments, not both")
        return cls(configs, profile=GenericProfile(), jwks_cache=jwks_cache)

    async def __aenter__(self) -> "JwtVerifier":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_cache:
            await self.jwks_cache.aclose()

    @property
    def expected_issuers(self) -> tuple[str, ...]:
        return tuple(self._issuers)

    def get_issuer_config(self, issuer: str | None = None) -> IssuerConfig:
        """
        Returns the config of `issuer`, or the only config when `issuer` is None.

        Raises:
            ConfigurationError: If `issuer` is None while several issuers are configured, or is not configured.
        """
        if issuer is None:
            if len(self._issuers) != 1:
                raise ConfigurationError(f"{self.profile.selector} must be provided")
            return next(iter(self._issuers.values()))
        issuer_config = self._issuers.get(issuer)
        if issuer_config is None:
            raise ConfigurationError(f"issuer not configured: {issuer}")
        return issuer_config

    def _resolve_issuer(self, identifier: str | None) -> IssuerConfig:
        return self.get_issuer_config(None if identifier is None else self.profile.issuer_for(identifier))

    def cache_jwks(self, jwks: Jwks | dict[str, Any], identifier: str | None = None) -> None:
        """
        Loads a JWKS into the cache so tokens can be verified without fetching it.

        Args:
            jwks: The JWKS document.
            identifier: Issuer (or user pool id for Cognito). Required when several issuers are configured.

        Raises:
            ConfigurationError: If the identifier is missing or unknown.
            JwksValidationError: If the JWKS is invalid.
        """
        issuer_config = self._resolve_issuer(identifier)
        self.jwks_cache.seed(issuer_config.issuer, jwks)

    def _prepare(
        self, token: str, properties: dict[str, Any]
    ) -> tuple[DecomposedJwt, IssuerConfig, VerifyProperties]:
        overrides = dict(properties)
        issuer_config = self._resolve_issuer(overrides.pop(self.profile.selector, None))
        verify_properties = self.profile.merge_properties(issuer_config.properties, overrides)

        decomposed = decompose_unverified_jwt(token)
        validate_jwt_fields(
            decomposed.payload,
            issuer=issuer_config.issuer,
            audience=verify_properties.audience,
            scope=verify_properties.scope,
            grace_seconds=verify_properties.grace_seconds,
        )
        return decomposed, issuer_config, verify_properties

    @staticmethod
    def _kid(decomposed: DecomposedJwt, span: Span) -> str:
        kid = decomposed.header.get("kid")
        if kid is None:
            raise MissingKeyIdError("JWT header does not have a valid kid claim")
        span.set_attribute("jwt.kid", kid)
        return kid

    def _validate_domain_claims(self, decomposed: DecomposedJwt, properties: VerifyProperties) -> dict[str, Any]:
        # Only reached after the signature has been verified
        try:
            self.profile.validate_domain_claims(decomposed.payload, properties)
        except JwtInvalidClaimError as e:
            if properties.include_raw_jwt_in_errors:
                raise e.with_raw_jwt(decomposed) from e
            raise
        return decomposed.payload

    @staticmethod
    def _record_failure(span: Span, error: CoreasonJwtError) -> None:
        if isinstance(error, TrustChainError):
            logger.error(f"JWT rejected: {type(error).__name__}: {error}")
        else:
            logger.warning(f"JWT rejected: {type(error).__name__}: {error}")
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))

    def verify_sync(self, token: str, **properties: Any) -> dict[str, Any]:
        """
        Verifies a JWT using cached keys only. Never performs I/O.

        Args:
            token: The raw JWT string.
            **properties: Per-call overrides of the issuer's verify properties, plus the
                profile's selector (`issuer` or `user_pool_id`) to pick an issuer.

        Returns:
            dict[str, Any]: The verified payload.

        Raises:
            ConfigurationError: On missing or invalid properties.
            MalformedTokenError: If the token is not a structurally valid JWT.
            JwtInvalidClaimError: If a claim violates the policy.
            SigningKeyNotCachedError: If the signing key is not cached.
            TrustChainError: If the algorithm or signature is invalid.
        """
        with tracer.start_as_current_span("verify_jwt", record_exception=False) as span:
            try:
                decomposed, issuer_config, verify_properties = self._prepare(token, properties)
                span.set_attribute("jwt.issuer", issuer_config.issuer)
                jwk = self.jwks_cache.resolve_sync(issuer_config.issuer, self._kid(decomposed, span))
                verify_signature_against_jwk(decomposed, jwk)
                payload = self._validate_domain_claims(decomposed, verify_properties)
            except CoreasonJwtError as e:
                self._record_failure(span, e)
                raise

            span.set_status(Status(StatusCode.OK))
            return payload

    async def verify(self, token: str, **properties: Any) -> dict[str, Any]:
        """
        Verifies a JWT, fetching the issuer's JWKS if the signing key is not cached.

        Takes the same arguments as `verify_sync`.

        Returns:
            dict[str, Any]: The verified payload.

        Raises:
            ConfigurationError: On missing or invalid properties.
            MalformedTokenError: If the token is not a structurally valid JWT.
            JwtInvalidClaimError: If a claim violates the policy.
            SigningKeyNotFoundError: If the signing key is unknown even after refetching the JWKS.
            JwksFetchError: If the JWKS cannot be fetched.
            TrustChainError: If the algorithm or signature is invalid.
        """
        with tracer.start_as_current_span("verify_jwt", record_exception=False) as span:
            try:
                decomposed, issuer_config, verify_properties = self._prepare(token, properties)
                span.set_attribute("jwt.issuer", issuer_config.issuer)
                jwk = await self.jwks_cache.resolve(
                    issuer_config.issuer, self._kid(decomposed, span), issuer_config.jwks_uri
                )
                verify_signature_against_jwk(decomposed, jwk)
                payload = self._validate_domain_claims(decomposed, verify_properties)
            except CoreasonJwtError as e:
                self._record_failure(span, e)
                raise

            span.set_status(Status(StatusCode.OK))
            return payload
