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
Three-valued policy fields: a check is either required with a set of values,
explicitly disabled (``None``), or left unspecified (``UNSET``).
"""

from collections.abc import Iterable
from enum import Enum, StrEnum
from typing import Any, Final

from coreason_jwt.exceptions import ConfigurationError


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset.UNSET
"""Sentinel for "not provided", as opposed to ``None`` which disables a check."""


class PolicyState(StrEnum):
    REQUIRED = "required"
    DISABLED = "disabled"
    UNSPECIFIED = "unspecified"


class Policy:
    """
    An immutable claim policy.

    Use `Policy.coerce` to build one from caller input: a string or iterable of
    strings is Required, ``None`` is Disabled and ``UNSET`` is Unspecified.
    """

    __slots__ = ("_state", "_values")

    def __init__(self, state: PolicyState, values: frozenset[str] = frozenset()) -> None:
        self._state = state
        self._values = values

    @classmethod
    def required(cls, values: str | Iterable[str]) -> "Policy":
        if isinstance(values, str):
            return cls(PolicyState.REQUIRED, frozenset([values]))
        values = frozenset(values)
        if not values:
            raise ConfigurationError("A required policy needs at least one value")
        if not all(isinstance(v, str) for v in values):
            raise ConfigurationError("Policy values must be strings")
        return cls(PolicyState.REQUIRED, values)

    @classmethod
    def disabled(cls) -> "Policy":
        return DISABLED

    @classmethod
    def unspecified(cls) -> "Policy":
        return UNSPECIFIED

    @classmethod
    def coerce(cls, value: Any) -> "Policy":
        """
        Builds a Policy from caller input.

        Raises:
            ConfigurationError: If the value is neither a string, an iterable of strings, None nor UNSET.
        """
        if isinstance(value, Policy):
            return value
        if value is UNSET:
            return UNSPECIFIED
        if value is None:
            return DISABLED
        if isinstance(value, (str, list, tuple, set, frozenset)):
            return cls.required(value)
        raise ConfigurationError(f"Invalid policy value: {value!r}")

    @property
    def state(self) -> PolicyState:
        return self._state

    @property
    def values(self) -> frozenset[str]:
        return self._values

    @property
    def is_required(self) -> bool:
        return self._state is PolicyState.REQUIRED

    @property
    def is_unspecified(self) -> bool:
        return self._state is PolicyState.UNSPECIFIED

    def resolve(self, name: str) -> frozenset[str] | None:
        """
        Returns the required values, or None when the check is disabled.

        Raises:
            ConfigurationError: If the policy was left unspecified.
        """
        if self._state is PolicyState.UNSPECIFIED:
            raise ConfigurationError(f"{name} must be provided or set to None explicitly")
        if self._state is PolicyState.DISABLED:
            return None
        return self._values

    def resolve_optional(self) -> frozenset[str] | None:
        """Returns the required values, or None when disabled or unspecified."""
        return self._values if self._state is PolicyState.REQUIRED else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Policy):
            return NotImplemented
        return self._state is other._state and self._values == other._values

    def __hash__(self) -> int:
        return hash((self._state, self._values))

    def __repr__(self) -> str:
        if self._state is PolicyState.REQUIRED:
            return f"Policy.required({sorted(self._values)!r})"
        return f"Policy.{self._state.value}()"


DISABLED: Final = Policy(PolicyState.DISABLED)
UNSPECIFIED: Final = Policy(PolicyState.UNSPECIFIED)
