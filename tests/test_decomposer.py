# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_jwt

from typing import Any, Dict

import pytest
from helpers import b64url

from coreason_jwt.decomposer import decompose_unverified_jwt, safe_json_parse
from coreason_jwt.exceptions import MalformedTokenError

HEADER = {"alg": "RS256", "kid": "key-1"}
SIGNATURE = b64url(b"not-a-real-signature")


def make_token(header: Any = None, payload: Any = None) -> str:
    return f"{b64url(HEADER if header is None else header)}.{b64url({} if payload is None else payload)}.{SIGNATURE}"


def test_decompose_signed_token(rsa_key: Any, claims: Dict[str, Any], create_token: Any) -> None:
    token = create_token(rsa_key, claims)

    decomposed = decompose_unverified_jwt(token)

    assert decomposed.header["alg"] == "RS256"
    assert decomposed.header["kid"] == "key-1"
    assert decomposed.payload == claims


def test_segments_are_kept_verbatim(rsa_key: Any, claims: Dict[str, Any], create_token: Any) -> None:
    token = create_token(rsa_key, claims)
    header_b64, payload_b64, signature_b64 = token.split(".")

    decomposed = decompose_unverified_jwt(token)

    assert decomposed.header_b64 == header_b64
    assert decomposed.payload_b64 == payload_b64
    assert decomposed.signature_b64 == signature_b64
    assert decomposed.signing_input == f"{header_b64}.{payload_b64}".encode("ascii")


def test_no_claim_is_required() -> None:
    decomposed = decompose_unverified_jwt(make_token(header={}, payload={}))
    assert decomposed.header == {}
    assert decomposed.payload == {}


@pytest.mark.parametrize(
    "token",
    [
        "",
        "abc",
        "a.b",
        "a.b.c.d",
        "a..c",
        ".b.c",
        "a.b.",
        "a+b.c.d",
        "a.b.c=",
        "e30.e30.e30\n",
        " e30.e30.e30",
    ],
)
def test_rejects_bad_shapes(token: str) -> None:
    with pytest.raises(MalformedTokenError):
        decompose_unverified_jwt(token)


def test_rejects_non_string() -> None:
    with pytest.raises(MalformedTokenError, match="not a string"):
        decompose_unverified_jwt(123)  # type: ignore[arg-type]


def test_rejects_invalid_base64() -> None:
    # A single base64 character can never be decoded
    with pytest.raises(MalformedTokenError, match="base64url"):
        decompose_unverified_jwt(f"A.{b64url({})}.{SIGNATURE}")


def test_rejects_invalid_json() -> None:
    with pytest.raises(MalformedTokenError, match="Header is not a valid JSON object"):
        decompose_unverified_jwt(make_token(header=b"not json"))

    with pytest.raises(MalformedTokenError, match="Payload is not a valid JSON object"):
        decompose_unverified_jwt(make_token(payload=b"{broken"))


def test_rejects_non_utf8() -> None:
    with pytest.raises(MalformedTokenError):
        decompose_unverified_jwt(".".join([b64url(b"\xc3\x28"), b64url({}), SIGNATURE]))


@pytest.mark.parametrize("value", [[1], "string", 1, None])
def test_rejects_non_object_segments(value: Any) -> None:
    with pytest.raises(MalformedTokenError, match="not an object"):
        decompose_unverified_jwt(f"{b64url(value)}.{b64url({})}.{SIGNATURE}")
    with pytest.raises(MalformedTokenError, match="not an object"):
        decompose_unverified_jwt(f"{b64url(HEADER)}.{b64url(value)}.{SIGNATURE}")


@pytest.mark.parametrize("header", [{"alg": 256}, {"kid": ["key-1"]}, {"alg": None}])
def test_rejects_wrong_header_types(header: Dict[str, Any]) -> None:
    with pytest.raises(MalformedTokenError, match="header"):
        decompose_unverified_jwt(make_token(header=header))


@pytest.mark.parametrize(
    "payload",
    [
        {"exp": "1700000000"},
        {"exp": True},
        {"nbf": [1]},
        {"iat": {}},
        {"iss": 1},
        {"scope": ["read"]},
        {"jti": 42},
        {"aud": 1},
        {"aud": ["ok", 2]},
        {"aud": {"a": "b"}},
    ],
)
def test_rejects_wrong_payload_types(payload: Dict[str, Any]) -> None:
    with pytest.raises(MalformedTokenError, match="payload"):
        decompose_unverified_jwt(make_token(payload=payload))


def test_accepts_valid_payload_types() -> None:
    payload = {"exp": 1.5, "nbf": 1, "iat": 0, "iss": "i", "scope": "a b", "jti": "j", "aud": ["a", "b"]}
    assert decompose_unverified_jwt(make_token(payload=payload)).payload == payload


def test_rejects_duplicate_keys() -> None:
    with pytest.raises(MalformedTokenError):
        decompose_unverified_jwt(make_token(payload=b'{"iss": "a", "iss": "b"}'))


def test_rejects_non_finite_numbers() -> None:
    with pytest.raises(MalformedTokenError):
        decompose_unverified_jwt(make_token(payload=b'{"exp": NaN}'))
    with pytest.raises(MalformedTokenError):
        decompose_unverified_jwt(make_token(payload=b'{"exp": 1e999}'))


def test_safe_json_parse() -> None:
    assert safe_json_parse('{"__proto__": {"admin": true}}') == {"__proto__": {"admin": True}}
    with pytest.raises(ValueError):
        safe_json_parse('{"a": 1, "a": 2}')
    with pytest.raises(ValueError):
        safe_json_parse("Infinity")


def test_rejects_integers_beyond_float_range() -> None:
    huge = b'{"exp": 1' + b"0" * 400 + b"}"
    with pytest.raises(MalformedTokenError, match="exp claim is not a number"):
        decompose_unverified_jwt(make_token(payload=huge))
