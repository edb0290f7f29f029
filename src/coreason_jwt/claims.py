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
Generic claims validation: exp, nbf, iss, aud and scope.
"""

import time
from datetime import datetime, timezone
from typing import Any

from coreason_jwt.assertions import assert_string_array_contains_string, assert_string_arrays_overlap
from coreason_jwt.exceptions import (
    FailedAssertion,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidScopeError,
    TokenExpiredError,
    TokenNotYetValidError,
)
from coreason_jwt.policy import UNSET, Policy


def _isoformat(numeric_date: float) -> str:
    try:
        return datetime.fromtimestamp(numeric_date, tz=timezone.utc).isoformat()
    except (OverflowError, ValueError, OSError):
        # Outside the range datetime can represent
        return str(numeric_date)


def validate_jwt_fields(
    payload: dict[str, Any],
    *,
    issuer: Any = UNSET,
    audience: Any = UNSET,
    scope: Any = None,
    grace_seconds: float = 0,
    now: float | None = None,
) -> None:
    """
    Validates the generic claims of a JWT payload against a policy.

    `issuer` and `audience` accept a value, a list of values, None (check disabled)
    or a `Policy`. Leaving them UNSET is a configuration mistake.

    Args:
        payload: The decoded JWT payload.
        issuer: Allowed issuer(s).
        audience: Allowed audience(s); the token's aud must overlap them.
        scope: Scopes of which at least one must be in the token's scope claim. None skips the check.
        grace_seconds: Tolerance applied to both exp and nbf.
        now: Current time in seconds since the epoch. Defaults to time.time().

    Raises:
        TokenExpiredError: If exp + grace_seconds is in the past.
        TokenNotYetValidError: If nbf - grace_seconds is in the future.
        ConfigurationError: If issuer or audience were left UNSET.
        InvalidIssuerError: If iss is not allowed.
        InvalidAudienceError: If aud does not overlap the allowed audience.
        InvalidScopeError: If scope does not overlap the required scopes.
    """
    current = time.time() if now is None else now

    exp = payload.get("exp")
    if exp is not None and exp + grace_seconds < current:
        raise TokenExpiredError(f"Token expired at {_isoformat(exp)}", FailedAssertion(exp, current))

    nbf = payload.get("nbf")
    if nbf is not None and nbf - grace_seconds > current:
        raise TokenNotYetValidError(f"Token can't be used before {_isoformat(nbf)}", FailedAssertion(nbf, current))

    allowed_issuers = Policy.coerce(issuer).resolve("issuer")
    if allowed_issuers is not None:
        assert_string_array_contains_string("Issuer", payload.get("iss"), allowed_issuers, InvalidIssuerError)

    allowed_audience = Policy.coerce(audience).resolve("audience")
    if allowed_audience is not None:
        assert_string_arrays_overlap("Audience", payload.get("aud"), allowed_audience, InvalidAudienceError)

    required_scopes = Policy.coerce(scope).resolve_optional()
    if required_scopes is not None:
        token_scope = payload.get("scope")
        assert_string_arrays_overlap(
            "Scope",
            token_scope.split(" ") if isinstance(token_scope, str) else token_scope,
            required_scopes,
            InvalidScopeError,
        )
