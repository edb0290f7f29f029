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
Primitive claim assertions that raise a typed claim error on failure.
"""

from collections.abc import Iterable
from typing import Any

from coreason_jwt.exceptions import FailedAssertion, JwtInvalidClaimError


def _as_string_set(value: Any) -> frozenset[str] | None:
    """Coerces a string or an iterable of strings to a set. Returns None for anything else."""
    if isinstance(value, str):
        return frozenset([value])
    if isinstance(value, (list, tuple, set, frozenset)) and all(isinstance(v, str) for v in value):
        return frozenset(value)
    return None


def _format_expected(expected: Iterable[str]) -> str:
    return ", ".join(sorted(expected))


def assert_string_equals(
    name: str,
    actual: Any,
    expected: str,
    error_cls: type[JwtInvalidClaimError],
) -> None:
    """
    Asserts that `actual` is the string `expected`.

    Raises:
        error_cls: If `actual` is missing or differs.
    """
    if actual is None:
        raise error_cls(f"Missing {name}. Expected: {expected}", FailedAssertion(actual, expected))
    if not isinstance(actual, str) or actual != expected:
        raise error_cls(f"{name} not allowed: {actual}. Expected: {expected}", FailedAssertion(actual, expected))


def assert_string_array_contains_string(
    name: str,
    actual: Any,
    expected: str | Iterable[str],
    error_cls: type[JwtInvalidClaimError],
) -> None:
    """
    Asserts that the string `actual` is one of `expected`.

    Raises:
        error_cls: If `actual` is missing, not a string, or not among `expected`.
    """
    allowed = frozenset([expected]) if isinstance(expected, str) else frozenset(expected)
    if actual is None:
        raise error_cls(
            f"Missing {name}. Expected one of: {_format_expected(allowed)}",
            FailedAssertion(actual, allowed),
        )
    if not isinstance(actual, str) or actual not in allowed:
        raise error_cls(
            f"{name} not allowed: {actual}. Expected one of: {_format_expected(allowed)}",
            FailedAssertion(actual, allowed),
        )


def assert_string_arrays_overlap(
    name: str,
    actual: Any,
    expected: str | Iterable[str],
    error_cls: type[JwtInvalidClaimError],
) -> None:
    """
    Asserts that `actual` (a string or list of strings) shares at least one value with `expected`.

    Raises:
        error_cls: If `actual` is missing, of the wrong type, or has no value in common with `expected`.
    """
    allowed = frozenset([expected]) if isinstance(expected, str) else frozenset(expected)
    if actual is None:
        raise error_cls(
            f"Missing {name}. Expected one of: {_format_expected(allowed)}",
            FailedAssertion(actual, allowed),
        )
    found = _as_string_set(actual)
    if found is None:
        raise error_cls(f"{name} is not a string or list of strings: {actual!r}", FailedAssertion(actual, allowed))
    if not found & allowed:
        raise error_cls(
            f"{name} not allowed: {_format_expected(found)}. Expected one of: {_format_expected(allowed)}",
            FailedAssertion(actual, allowed),
        )
