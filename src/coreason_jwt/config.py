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
Configuration for the coreason-jwt package.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreasonJwtSettings(BaseSettings):
    """
    Settings for fetching JWKS documents.

    Attributes:
        http_timeout (float): Timeout in seconds for each JWKS request.
        max_response_bytes (int): Largest JWKS response accepted.
        fetch_attempts (int): Attempts per fetch on transport errors.
        fetch_backoff_initial (float): First retry delay in seconds, doubled on each attempt.
        fetch_backoff_max (float): Upper bound for the retry delay.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_JWT_",
        case_sensitive=False,
    )

    http_timeout: float = Field(default=5.0, gt=0)
    max_response_bytes: int = Field(default=512 * 1024, gt=0)
    fetch_attempts: int = Field(default=3, ge=1)
    fetch_backoff_initial: float = Field(default=0.1, ge=0)
    fetch_backoff_max: float = Field(default=1.0, ge=0)

    @model_validator(mode="after")
    def validate_backoff(self) -> "CoreasonJwtSettings":
        if self.fetch_backoff_max < self.fetch_backoff_initial:
            raise ValueError("fetch_backoff_max must not be smaller than fetch_backoff_initial")
        return self
