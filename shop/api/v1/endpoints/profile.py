"""Self-service profile endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop.api.deps import get_current_user
from shop.db.session import get_db
from shop.models import User
from shop.schemas.account import ChangePasswordRequest, ProfileUpdate
from shop.services.user_service import change_password, get_or_create_profile, serialize_profile, soft_delete

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def get_profile(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return serialize_profile(current_user, current_user.profile)


@router.put("")
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    profile = get_or_create_profile(db, current_user)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    return serialize_profile(current_user, profile)


@router.put("/change-password")
def update_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    change_password(db, current_user, payload.current_password, payload.new_password)
    logger.info("[AUTH] Password changed for user_id=%s", current_user.id)
    return {"message": "Password updated successfully"}


@router.delete("")
def delete_account(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict[str, str]:
    """Soft-delete the caller's own account."""
    soft_delete(db, current_user)
    logger.info("[AUTH] Account soft-deleted by owner user_id=%s", current_user.id)
    return {"message": "Account deleted"}
