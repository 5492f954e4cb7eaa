"""Customer order history endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shop.api.deps import get_current_user
from shop.db.session import get_db
from shop.models import User
from shop.schemas.admin import OrderStatus
from shop.services import order_service
from shop.utils.pagination import PageParams, page_params, pagination

router: APIRouter = APIRouter()


@router.get("")
def list_my_orders(
    status: OrderStatus | None = Query(default=None),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    rows, total = order_service.list_orders(
        db, page=paging.page, limit=paging.limit, status=status, user_id=current_user.id
    )
    return {
        "orders": [order_service.serialize_order(order) for order in rows],
        "pagination": pagination(paging.page, paging.limit, total),
    }


@router.get("/{order_id}")
def get_my_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return order_service.serialize_order(order_service.get_user_order(db, current_user, order_id))
