"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    All durations are in their natural units (minutes for short durations,
    hours for longer ones) to make configuration intuitive.
    """

    jwt_secret: str = Field(
        ...,
        description="Shared HMAC secret used to sign and verify tokens",
        min_length=32,
        repr=False,
    )

    # Token lifetimes
    access_token_minutes: int = Field(
        default=5,
        description="Lifetime of the access token issued on login",
        ge=1,
        le=60,
    )
    refresh_token_hours: int = Field(
        default=72,
        description="Lifetime of the refresh token issued on login",
        ge=1,
        le=720,
    )

    # Password hashing
    password_hash_rounds: int = Field(
        default=12,
        description="bcrypt cost factor (log2 rounds)",
        ge=4,
        le=16,
    )
