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
Signature verification of a decomposed JWT against a JWK.
"""

import binascii
from typing import Final

from authlib.common.encoding import urlsafe_b64decode
from authlib.jose import JsonWebSignature
from authlib.jose.errors import JoseError

from coreason_jwt.exceptions import InvalidAlgorithmError, InvalidSignatureError
from coreason_jwt.models import DecomposedJwt, Jwk

# Signature algorithm -> required key type
SUPPORTED_ALGORITHMS: Final[dict[str, str]] = {
    "RS256": "RSA",
    "RS384": "RSA",
    "RS512": "RSA",
    "ES256": "EC",
    "ES384": "EC",
    "ES512": "EC",
}

_EC_CURVES: Final[dict[str, str]] = {
    "ES256": "P-256",
    "ES384": "P-384",
    "ES512": "P-521",
}


def verify_signature(algorithm: str, jwk: Jwk, signing_input: bytes, signature: bytes) -> bool:
    """
    Checks `signature` over `signing_input` with the public key `jwk`, using authlib's JWS algorithms.

    Returns:
        bool: True if the signature is valid.

    Raises:
        InvalidAlgorithmError: If authlib has no such algorithm.
        InvalidSignatureError: If the key material cannot be loaded.
    """
    jws_algorithm = JsonWebSignature.ALGORITHMS_REGISTRY.get(algorithm)
    if jws_algorithm is None:
        raise InvalidAlgorithmError(f"Unsupported signature algorithm: {algorithm}")
    try:
        key = jws_algorithm.prepare_key(jwk.as_dict())
        return bool(jws_algorithm.verify(signing_input, signature, key))
    except (JoseError, ValueError, TypeError) as e:
        raise InvalidSignatureError(f"Unable to verify signature with JWK {jwk.kid}: {e}") from e


def assert_algorithm_matches_jwk(alg: str | None, jwk: Jwk) -> str:
    """
    Ensures the token's alg is supported and the JWK may be used with it.

    Returns:
        str: The algorithm.

    Raises:
        InvalidAlgorithmError: If the alg is missing, unsupported or incompatible with the JWK.
    """
    if alg is None:
        raise InvalidAlgorithmError("Missing JWT signature algorithm")
    if alg not in SUPPORTED_ALGORITHMS:
        raise InvalidAlgorithmError(
            f"JWT signature algorithm not allowed: {alg}. Expected one of: {', '.join(SUPPORTED_ALGORITHMS)}"
        )
    if jwk.kty != SUPPORTED_ALGORITHMS[alg]:
        raise InvalidAlgorithmError(f"JWK kty {jwk.kty} cannot be used with algorithm {alg}")
    if jwk.use is not None and jwk.use != "sig":
        raise InvalidAlgorithmError(f"JWK use not allowed: {jwk.use}. Expected: sig")
    if jwk.alg is not None and jwk.alg != alg:
        raise InvalidAlgorithmError(f"JWK alg {jwk.alg} does not match JWT alg {alg}")
    if alg in _EC_CURVES:
        crv = (jwk.model_extra or {}).get("crv")
        if crv != _EC_CURVES[alg]:
            raise InvalidAlgorithmError(f"JWK curve {crv} cannot be used with algorithm {alg}")
    return alg


def verify_signature_against_jwk(decomposed: DecomposedJwt, jwk: Jwk) -> None:
    """
    Verifies the signature of a decomposed JWT over its original base64url header and payload.

    Raises:
        InvalidAlgorithmError: If the token's alg does not fit the JWK.
        InvalidSignatureError: If the signature does not verify.
    """
    alg = assert_algorithm_matches_jwk(decomposed.header.get("alg"), jwk)

    try:
        signature = urlsafe_b64decode(decomposed.signature_b64.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise InvalidSignatureError("JWT signature is not valid base64url") from e

    if not verify_signature(alg, jwk, decomposed.signing_input, signature):
        raise InvalidSignatureError("Invalid signature")
