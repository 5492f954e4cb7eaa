"""Authentication-related request schemas."""

from pydantic import Field

from shop.schemas.common import ApiModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(ApiModel):
    """Payload for user registration."""

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=8)


class LoginRequest(ApiModel):
    """Payload for user and admin login."""

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=1)


class GoogleOAuthRequest(ApiModel):
    """ID token returned to the browser by Google sign-in."""

    credential: str = Field(min_length=1)
