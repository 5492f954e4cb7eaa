"""Back-office order management endpoints."""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from shop.api.deps import require_admin
from shop.core.errors import ValidationError
from shop.db.session import get_db
from shop.models import User
from shop.schemas.admin import OrderStatus, OrderStatusUpdate
from shop.services import audit_service, order_service
from shop.utils.pagination import PageParams, page_params, pagination

router: APIRouter = APIRouter()


@router.get("")
def list_all_orders(
    status: OrderStatus | None = Query(default=None),
    user_id: int | None = Query(default=None, alias="userId"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("startDate must not be after endDate")
    rows, total = order_service.list_orders(
        db,
        page=paging.page,
        limit=paging.limit,
        status=status,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "orders": [order_service.serialize_order(order, include_user=True) for order in rows],
        "pagination": pagination(paging.page, paging.limit, total),
    }


@router.get("/{order_id}")
def get_order_detail(order_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)) -> dict[str, Any]:
    return order_service.serialize_order(order_service.get_order(db, order_id), include_user=True)


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    order = order_service.get_order(db, order_id)
    previous = order_service.update_status(db, order, payload.status)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "update_order_status",
        target_type="order",
        target_id=order.id,
        details={"oldStatus": previous, "newStatus": order.status, "reason": payload.reason},
    )
    return {"message": "Order status updated", "order": order_service.serialize_order(order, include_user=True)}
