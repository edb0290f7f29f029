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
Decomposes a JWT string into its header, payload and signature, without verifying anything.
"""

import binascii
import json
import math
import re
from typing import Any

from authlib.common.encoding import urlsafe_b64decode

from coreason_jwt.exceptions import MalformedTokenError
from coreason_jwt.models import DecomposedJwt

_JWT_PATTERN = re.compile(r"[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ValueError(f"Duplicate JSON key: {key}")
        result[key] = value
    return result


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def safe_json_parse(text: str | bytes) -> Any:
    """
    Parses JSON into plain dicts, lists and scalars.

    Duplicate object keys and the non-standard NaN/Infinity constants are rejected,
    so two parsers can never disagree on what a document says.

    Raises:
        ValueError: If the text is not valid JSON.
    """
    return json.loads(text, object_pairs_hook=_reject_duplicate_keys, parse_constant=_reject_constant)


def _decode_segment(segment: str, name: str) -> dict[str, Any]:
    try:
        raw = urlsafe_b64decode(segment.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"Invalid JWT. {name} is not valid base64url") from e
    try:
        parsed = safe_json_parse(raw)
    except (ValueError, RecursionError) as e:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        raise MalformedTokenError(f"Invalid JWT. {name} is not a valid JSON object") from e
    if not isinstance(parsed, dict):
        raise MalformedTokenError(f"JWT {name.lower()} is not an object")
    return parsed


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a NumericDate
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # An int too large for a float
        return False


def assert_jwt_header(header: dict[str, Any]) -> None:
    """
    Checks the types of the header fields the verifier relies on.

    Raises:
        MalformedTokenError: If alg or kid are present but not strings.
    """
    for claim in ("alg", "kid"):
        if claim in header and not isinstance(header[claim], str):
            raise MalformedTokenError(f"JWT header {claim} claim is not a string")


def assert_jwt_payload(payload: dict[str, Any]) -> None:
    """
    Checks the types of the registered payload claims. Presence is not required here.

    Raises:
        MalformedTokenError: If a registered claim has the wrong type.
    """
    for claim in ("exp", "nbf", "iat"):
        if claim in payload and not _is_number(payload[claim]):
            raise MalformedTokenError(f"JWT payload {claim} claim is not a number")
    for claim in ("iss", "scope", "jti"):
        if claim in payload and not isinstance(payload[claim], str):
            raise MalformedTokenError(f"JWT payload {claim} claim is not a string")
    if "aud" in payload:
        aud = payload["aud"]
        if not isinstance(aud, str) and not (isinstance(aud, list) and all(isinstance(a, str) for a in aud)):
            raise MalformedTokenError("JWT payload aud claim is not a string or array of strings")


def decompose_unverified_jwt(token: str) -> DecomposedJwt:
    """
    Splits and parses a JWT. Do NOT trust the result, it is unverified.

    Args:
        token: The raw JWT string.

    Returns:
        DecomposedJwt: The parsed header and payload plus the original base64url segments.

    Raises:
        MalformedTokenError: If the token is not three base64url segments of a JSON header and payload.
    """
    if not token:
        raise MalformedTokenError("Empty JWT")
    if not isinstance(token, str):
        raise MalformedTokenError("JWT is not a string")
    if not _JWT_PATTERN.fullmatch(token):
        raise MalformedTokenError("JWT string does not consist of exactly 3 parts (header, payload, signature)")

    header_b64, payload_b64, signature_b64 = token.split(".")

    header = _decode_segment(header_b64, "Header")
    assert_jwt_header(header)

    payload = _decode_segment(payload_b64, "Payload")
    assert_jwt_payload(payload)

    return DecomposedJwt(
        header=header,
        header_b64=header_b64,
        payload=payload,
        payload_b64=payload_b64,
        signature_b64=signature_b64,
    )
