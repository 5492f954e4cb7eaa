"""Authentication endpoints (bearer JWT)."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from shop.api.deps import bearer_scheme, get_current_user
from shop.core.errors import AccountDisabled, Forbidden
from shop.core.oauth import verify_google_credential
from shop.core.security import issue_token, refresh_token
from shop.db.session import get_db
from shop.models import User
from shop.schemas.auth import GoogleOAuthRequest, LoginRequest, RegisterRequest
from shop.services.user_service import (
    authenticate,
    create_user,
    get_or_create_profile,
    serialize_profile,
    serialize_user,
    upsert_oauth_user,
)

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


def _session(user: User, **claims: Any) -> dict[str, Any]:
    return {"token": issue_token(user, **claims), "user": serialize_user(user)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    user = create_user(db, payload.email, payload.password)
    logger.info("[AUTH] Registered user_id=%s", user.id)
    return _session(user)


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    user = authenticate(db, payload.email, payload.password)
    return _session(user)


@router.post("/admin-login")
def admin_login(payload: LoginRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Credential login restricted to admin-tier accounts."""
    user = authenticate(db, payload.email, payload.password)
    if not user.is_admin_tier:
        logger.warning("[AUTH] Non-admin user_id=%s attempted admin login", user.id)
        raise Forbidden("Admin access required")
    return _session(user)


@router.get("/me")
def me(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"user": serialize_user(current_user)}


@router.get("/profile")
def profile(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"user": serialize_profile(current_user, current_user.profile)}


@router.post("/logout")
def logout() -> dict[str, Any]:
    """Tokens are stateless; the client discards its copy."""
    return {"success": True, "message": "Logged out"}


@router.post("/refresh")
def refresh(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Re-issue the bearer token with a fresh lifetime for an active account."""
    return {"token": refresh_token(credentials.credentials), "user": serialize_user(current_user)}


@router.post("/oauth/google")
def google_oauth(payload: GoogleOAuthRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Sign in with a Google ID token verified against Google's keys."""
    identity = verify_google_credential(payload.credential)
    user = upsert_oauth_user(db, "google", identity.subject, identity.email, identity.picture)
    if not user.is_active:
        raise AccountDisabled("Account is disabled")
    if identity.first_name or identity.last_name:
        user_profile = get_or_create_profile(db, user)
        user_profile.first_name = user_profile.first_name or identity.first_name
        user_profile.last_name = user_profile.last_name or identity.last_name
        db.commit()
    logger.info("[AUTH] OAuth login via google for user_id=%s", user.id)
    return _session(user, auth_method="oauth", oauth_provider="google", picture=user.picture)
