"""Security utilities for password hashing and JWT session tokens."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from shop.core.config import settings
from shop.core.errors import InvalidToken
from shop.models.user import User

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

_TIME_CLAIMS = ("iat", "exp", "iss")


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a plaintext password against its hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def _encode(claims: dict[str, Any]) -> str:
    now: datetime = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = claims.copy()
    to_encode.update(
        {
            "iss": settings.jwt_issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=settings.jwt_expire_minutes)).timestamp()),
        }
    )
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def issue_token(
    user: User,
    *,
    auth_method: str = "email",
    oauth_provider: str | None = None,
    picture: str | None = None,
) -> str:
    """Create a signed session token describing ``user``."""
    claims: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "authMethod": auth_method,
        "emailVerified": bool(user.email_verified),
    }
    if oauth_provider:
        claims["oauthProvider"] = oauth_provider
    if picture:
        claims["picture"] = picture
    return _encode(claims)


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a token payload."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except ExpiredSignatureError as exc:
        raise InvalidToken("Token expired") from exc
    except JWTError as exc:
        raise InvalidToken("Invalid token") from exc
    return payload


def refresh_token(token: str) -> str:
    """Re-issue a still-valid token with a fresh lifetime."""
    payload = verify_token(token)
    claims = {key: value for key, value in payload.items() if key not in _TIME_CLAIMS}
    return _encode(claims)
