"""Request identity and role guards.

Every guard re-reads the user row; the role and status claims inside the
token are informational only.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from shop.core.config import settings
from shop.core.errors import AccountDisabled, Forbidden, InvalidToken, Unauthenticated
from shop.core.security import verify_token
from shop.db.session import get_db
from shop.models import User
from shop.services import audit_service
from shop.services.user_service import get_user_by_id

bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """Decode the bearer token from the Authorization header."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated("Unauthorized")
    return verify_token(credentials.credentials)


def get_token_user(
    payload: dict[str, Any] = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> User:
    """Load the token subject without checking account status."""
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise InvalidToken("Invalid authentication token") from exc

    user = get_user_by_id(db, user_id)
    if user is None:
        raise Unauthenticated("User not found")
    return user


def get_current_user(user: User = Depends(get_token_user)) -> User:
    """Resolve the authenticated, active user."""
    if not user.is_active:
        raise Unauthenticated("Account is not active")
    return user


def require_admin(
    request: Request,
    user: User = Depends(get_token_user),
    db: Session = Depends(get_db),
) -> User:
    """Admin-tier guard. Audits the request before the handler runs."""
    if not user.is_admin_tier:
        raise Forbidden("Admin access required")
    if not user.is_active:
        raise AccountDisabled("Account disabled")

    audit_service.record_request(db, request, user.id, f"{request.method} {request.url.path}")
    return user


def require_super_admin(admin: User = Depends(require_admin)) -> User:
    if admin.role != "super_admin":
        raise Forbidden("Super admin access required")
    return admin


def resolve_language(lang: str | None) -> str:
    """Fall back to the default language for unknown codes."""
    if lang and lang in settings.supported_languages:
        return lang
    return settings.default_language
