"""Order queries, serialization and admin status changes."""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from shop.core.errors import NotFound, NotFoundOrUnauthorized
from shop.models import Order, OrderItem, User
from shop.utils.time import day_bounds


def _order_options():
    return (selectinload(Order.items), selectinload(Order.user))


def list_orders(
    db: Session,
    *,
    page: int,
    limit: int,
    status: str | None = None,
    user_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[list[Order], int]:
    """Return a page of orders (newest first) and the total match count.

    ``start_date`` and ``end_date`` are both inclusive calendar days in UTC.
    """
    conditions = []
    if status:
        conditions.append(Order.status == status)
    if user_id is not None:
        conditions.append(Order.user_id == user_id)
    lower, upper = day_bounds(start_date, end_date)
    if lower is not None:
        conditions.append(Order.created_at >= lower)
    if upper is not None:
        conditions.append(Order.created_at < upper)

    rows = db.scalars(
        select(Order)
        .options(*_order_options())
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = db.scalar(select(func.count()).select_from(Order).where(*conditions)) or 0
    return list(rows), int(total)


def get_order(db: Session, order_id: int) -> Order:
    order = db.scalar(select(Order).options(*_order_options()).where(Order.id == order_id))
    if order is None:
        raise NotFound("Order not found")
    return order


def get_user_order(db: Session, user: User, order_id: int) -> Order:
    order = db.scalar(
        select(Order).options(*_order_options()).where(Order.id == order_id, Order.user_id == user.id)
    )
    if order is None:
        raise NotFoundOrUnauthorized("Order not found or unauthorized")
    return order


def recent_orders(db: Session, user_id: int, limit: int = 10) -> list[Order]:
    return list(
        db.scalars(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
        ).all()
    )


def update_status(db: Session, order: Order, status: str) -> str:
    """Set a new status and return the previous one. Any transition is allowed."""
    previous = order.status
    order.status = status
    db.commit()
    db.refresh(order)
    return previous


def serialize_order_item(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "productId": item.product_id,
        "productName": item.product_name,
        "quantity": item.quantity,
        "pricePerItem": float(item.price_per_item),
        "subtotal": float(item.subtotal),
    }


def serialize_order(order: Order, *, include_user: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": order.id,
        "userId": order.user_id,
        "totalAmount": float(order.total_amount),
        "status": order.status,
        "shippingAddress": {
            "recipientName": order.shipping_recipient_name,
            "recipientPhone": order.shipping_recipient_phone,
            "country": order.shipping_country,
            "province": order.shipping_province,
            "city": order.shipping_city,
            "district": order.shipping_district,
            "streetAddress": order.shipping_street_address,
            "postalCode": order.shipping_postal_code,
        }
        if order.shipping_recipient_name
        else None,
        "items": [serialize_order_item(item) for item in order.items],
        "itemCount": sum(item.quantity for item in order.items),
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }
    if include_user:
        payload["user"] = {"id": order.user.id, "email": order.user.email} if order.user else None
    return payload
