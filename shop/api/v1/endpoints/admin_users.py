"""Back-office user management endpoints."""

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from shop.api.deps import require_admin, require_super_admin
from shop.api.v1.endpoints.addresses import serialize_address
from shop.core.errors import Forbidden, ValidationError
from shop.db.session import get_db
from shop.models import User
from shop.schemas.admin import UserRoleUpdate, UserStatusUpdate
from shop.services import audit_service, order_service
from shop.services.user_service import (
    change_role,
    get_user_or_404,
    list_users,
    reset_password,
    serialize_profile,
    serialize_user,
    soft_delete,
)
from shop.utils.pagination import PageParams, page_params, pagination

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_all_users(
    search: str | None = Query(default=None),
    status: Literal["active", "disabled", "suspended", "deleted"] | None = Query(default=None),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    rows, total = list_users(db, page=paging.page, limit=paging.limit, search=search, status=status)
    return {
        "users": [serialize_user(user) for user in rows],
        "pagination": pagination(paging.page, paging.limit, total),
    }


@router.get("/{user_id}")
def get_user_detail(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)) -> dict[str, Any]:
    """User with profile, addresses and the 10 latest orders."""
    user = get_user_or_404(db, user_id)
    payload = serialize_profile(user, user.profile)
    payload["addresses"] = [serialize_address(address) for address in user.addresses]
    payload["orders"] = [order_service.serialize_order(order) for order in order_service.recent_orders(db, user.id)]
    return payload


@router.put("/{user_id}/status")
def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    user = get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise ValidationError("Cannot change your own status")
    if user.role == "super_admin" and admin.role != "super_admin":
        raise Forbidden("Super admin access required")
    previous = user.status
    user.status = payload.status
    db.commit()
    db.refresh(user)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "update_user_status",
        target_type="user",
        target_id=user.id,
        details={"oldStatus": previous, "newStatus": user.status},
    )
    logger.info("[ADMIN] admin_id=%s set user_id=%s status %s -> %s", admin.id, user.id, previous, user.status)
    return {"message": "User status updated", "user": serialize_user(user)}


@router.put("/{user_id}/role")
def update_user_role(
    user_id: int,
    payload: UserRoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    user = get_user_or_404(db, user_id)
    previous = change_role(db, admin, user, payload.role)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "update_user_role",
        target_type="user",
        target_id=user.id,
        details={"oldRole": previous, "newRole": user.role},
    )
    return {"message": "User role updated", "user": serialize_user(user)}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_super_admin),
) -> dict[str, str]:
    """Soft delete; admin-tier accounts cannot be removed this way."""
    user = get_user_or_404(db, user_id)
    if user.is_admin_tier:
        raise Forbidden("Cannot delete admin accounts")
    soft_delete(db, user)
    audit_service.record_request(
        db, request, admin.id, "delete_user", target_type="user", target_id=user.id, details={"email": user.email}
    )
    return {"message": "User deleted"}


@router.post("/{user_id}/reset-password")
def reset_user_password(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, str]:
    user = get_user_or_404(db, user_id)
    if user.role == "super_admin" and admin.role != "super_admin":
        raise Forbidden("Super admin access required")
    temp_password = reset_password(db, user)
    audit_service.record_request(db, request, admin.id, "reset_password", target_type="user", target_id=user.id)
    return {"message": "Password reset", "tempPassword": temp_password}
