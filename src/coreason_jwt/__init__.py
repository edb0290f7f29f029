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
Verification of JWTs issued by trusted OIDC providers and Amazon Cognito, with JWKS caching.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .cognito import CognitoProfile, create_cognito_verifier
from .config import CoreasonJwtSettings
from .decomposer import decompose_unverified_jwt
from .exceptions import (
    ConfigurationError,
    CoreasonJwtError,
    InvalidAlgorithmError,
    InvalidAudienceError,
    InvalidClientIdError,
    InvalidGroupError,
    InvalidIssuerError,
    InvalidScopeError,
    InvalidSignatureError,
    InvalidTokenUseError,
    JwksFetchError,
    JwksValidationError,
    JwtInvalidClaimError,
    MalformedTokenError,
    MissingKeyIdError,
    SigningKeyNotCachedError,
    SigningKeyNotFoundError,
    TokenExpiredError,
    TokenNotYetValidError,
    TrustChainError,
)
from .jwks_cache import JwksCache
from .policy import UNSET, Policy
from .profiles import ClaimProfile, GenericProfile
from .transport import HttpxJsonFetcher, JsonFetcher
from .verifier import JwtVerifier

__all__ = [
    "UNSET",
    "ClaimProfile",
    "CognitoProfile",
    "ConfigurationError",
    "CoreasonJwtError",
    "CoreasonJwtSettings",
    "GenericProfile",
    "HttpxJsonFetcher",
    "InvalidAlgorithmError",
    "InvalidAudienceError",
    "InvalidClientIdError",
    "InvalidGroupError",
    "InvalidIssuerError",
    "InvalidScopeError",
    "InvalidSignatureError",
    "InvalidTokenUseError",
    "JsonFetcher",
    "JwksCache",
    "JwksFetchError",
    "JwksValidationError",
    "JwtInvalidClaimError",
    "JwtVerifier",
    "MalformedTokenError",
    "MissingKeyIdError",
    "Policy",
    "SigningKeyNotCachedError",
    "SigningKeyNotFoundError",
    "TokenExpiredError",
    "TokenNotYetValidError",
    "TrustChainError",
    "create_cognito_verifier",
    "decompose_unverified_jwt",
]
