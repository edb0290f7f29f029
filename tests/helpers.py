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
Shared test helpers.
"""

import asyncio
import base64
import json
from typing import Any

ISSUER = "https://issuer.example.com/"
JWKS_URI = "https://issuer.example.com/.well-known/jwks.json"

POOL_ID = "eu-west-1_AbCdEfGhI"
COGNITO_ISSUER = f"https://cognito-idp.eu-west-1.amazonaws.com/{POOL_ID}"
COGNITO_JWKS_URI = f"{COGNITO_ISSUER}/.well-known/jwks.json"


def b64url(data: Any) -> str:
    """Base64url encodes a JSON value (or raw bytes) without padding."""
    raw = data if isinstance(data, bytes) else json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class FakeFetcher:
    """
    A JsonFetcher returning canned documents (or raising canned errors) in order.
    The last entry is repeated once the list is exhausted.
    """

    def __init__(self, *responses: Any, delay: float = 0.0) -> None:
        self.responses = list(responses)
        self.delay = delay
        self.calls: list[str] = []

    async def fetch_json(self, uri: str) -> Any:
        self.calls.append(uri)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response
