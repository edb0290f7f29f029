# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_jwt

import time
from typing import Any, Callable, Dict

import pytest
from authlib.jose import JsonWebKey, jwt
from helpers import ISSUER

TokenFactory = Callable[..., str]


@pytest.fixture(scope="session")
def rsa_key() -> Any:
    return JsonWebKey.generate_key("RSA", 2048, is_private=True, options={"kid": "key-1"})


@pytest.fixture(scope="session")
def other_rsa_key() -> Any:
    return JsonWebKey.generate_key("RSA", 2048, is_private=True, options={"kid": "key-2"})


@pytest.fixture(scope="session")
def ec_key() -> Any:
    return JsonWebKey.generate_key("EC", "P-256", is_private=True, options={"kid": "ec-1"})


@pytest.fixture
def jwks(rsa_key: Any) -> Dict[str, Any]:
    return {"keys": [rsa_key.as_dict(is_private=False)]}


@pytest.fixture
def claims() -> Dict[str, Any]:
    now = int(time.time())
    return {
        "sub": "user123",
        "iss": ISSUER,
        "aud": "my-api",
        "exp": now + 3600,
        "iat": now,
        "scope": "openid read:things",
    }


@pytest.fixture
def create_token() -> TokenFactory:
    def _create(key: Any, claims: Dict[str, Any], headers: Dict[str, Any] | None = None) -> str:
        if headers is None:
            headers = {"alg": "RS256", "kid": key.as_dict()["kid"]}
        return jwt.encode(headers, claims, key).decode("utf-8")  # type: ignore[no-any-return]

    return _create
