"""User service operations."""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shop.core.errors import AccountDisabled, Conflict, Forbidden, InvalidCredentials, NotFound, ValidationError
from shop.core.security import get_password_hash, verify_password
from shop.models import User, UserAddress, UserProfile
from shop.models.user import normalize_user_role

logger = logging.getLogger(__name__)

TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()).limit(1))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def create_user(
    db: Session,
    email: str,
    password: str | None,
    role: str = "user",
    *,
    auth_method: str = "email",
    created_by: int | None = None,
) -> User:
    if get_user_by_email(db, email) is not None:
        raise Conflict("Email already exists")
    user = User(
        email=email.strip().lower(),
        password_hash=get_password_hash(password) if password else None,
        role=normalize_user_role(role),
        status="active",
        auth_method=auth_method,
        email_verified=auth_method == "oauth",
        created_by=created_by,
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials on an active account."""
    user = get_user_by_email(db, email)
    # Same error for unknown email and wrong password.
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    if not user.is_active:
        raise AccountDisabled("Account is disabled")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def upsert_oauth_user(db: Session, provider: str, provider_user_id: str, email: str, picture: str | None) -> User:
    """Find a user by provider id, then by verified email; create one if neither matches.

    Admin-tier accounts are never linked to a provider identity by email.
    """
    user = db.scalar(select(User).where(User.google_id == provider_user_id).limit(1))
    if user is None:
        user = get_user_by_email(db, email)
        if user is not None and (user.is_admin_tier or user.google_id is not None):
            logger.warning("[AUTH] Refused to link %s identity to user_id=%s by email", provider, user.id)
            raise InvalidCredentials("Account cannot be linked to this sign-in provider")
        if user is None:
            user = User(email=email.strip().lower(), role="user", status="active")
            db.add(user)
        user.google_id = provider_user_id
    user.oauth_provider = provider
    user.auth_method = "oauth"
    user.email_verified = True
    if picture:
        user.picture = picture
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect")
    user.password_hash = get_password_hash(new_password)
    db.commit()


def reset_password(db: Session, user: User, length: int = 12) -> str:
    """Replace the password with a random temporary one and return it."""
    temp_password = "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))
    user.password_hash = get_password_hash(temp_password)
    db.commit()
    return temp_password


def soft_delete(db: Session, user: User) -> None:
    user.status = "deleted"
    db.commit()


def get_or_create_profile(db: Session, user: User) -> UserProfile:
    if user.profile is None:
        user.profile = UserProfile(user_id=user.id)
        db.flush()
    return user.profile


def get_owned_address(db: Session, user: User, address_id: int) -> UserAddress | None:
    return db.scalar(
        select(UserAddress).where(UserAddress.id == address_id, UserAddress.user_id == user.id).limit(1)
    )


def make_default_address(db: Session, user: User, address: UserAddress) -> None:
    """Flag ``address`` as the only default address of ``user``."""
    for other in db.scalars(select(UserAddress).where(UserAddress.user_id == user.id)).all():
        other.is_default = other.id == address.id


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "authMethod": user.auth_method,
        "oauthProvider": user.oauth_provider,
        "picture": user.picture,
        "emailVerified": user.email_verified,
        "lastLoginAt": user.last_login_at.isoformat() if user.last_login_at else None,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


def serialize_profile(user: User, profile: UserProfile | None) -> dict[str, Any]:
    """User fields plus the optional personal details."""
    payload = serialize_user(user)
    payload["profile"] = (
        {
            "firstName": profile.first_name,
            "lastName": profile.last_name,
            "phone": profile.phone,
            "gender": profile.gender,
            "avatar": profile.avatar,
        }
        if profile is not None
        else None
    )
    return payload


def list_users(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    status: str | None = None,
) -> tuple[list[User], int]:
    """Return a page of users (newest first) matching an email substring and status."""
    conditions = []
    if search:
        conditions.append(User.email.ilike(f"%{search.strip()}%"))
    if status:
        conditions.append(User.status == status)

    rows = db.scalars(
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = db.scalar(select(func.count()).select_from(User).where(*conditions)) or 0
    return list(rows), int(total)


def change_role(db: Session, actor: User, user: User, role: str) -> str:
    """Assign ``role`` and return the previous one.

    Only a super admin may grant or revoke ``super_admin``.
    """
    role = normalize_user_role(role)
    if "super_admin" in (role, user.role) and actor.role != "super_admin":
        raise Forbidden("Super admin access required")
    if actor.id == user.id and role != user.role:
        raise ValidationError("Cannot change your own role")
    previous = user.role
    user.role = role
    db.commit()
    db.refresh(user)
    return previous
