"""Back-office dashboard statistics."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shop.models import Order, Product, User
from shop.models.order import ORDER_STATUSES
from shop.utils.time import month_start_utc, today_window_utc

EXCLUDED_FROM_REVENUE = ("cancelled", "refunded")


def _count(db: Session, model, *conditions) -> int:
    return int(db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0)


def get_stats(db: Session) -> dict[str, Any]:
    today_start, today_end = today_window_utc()
    revenue = db.scalar(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(Order.status.not_in(EXCLUDED_FROM_REVENUE))
    )
    by_status = dict(db.execute(select(Order.status, func.count()).group_by(Order.status)).all())

    return {
        "totalUsers": _count(db, User, User.status != "deleted"),
        "totalOrders": _count(db, Order),
        "totalProducts": _count(db, Product),
        "newUsersThisMonth": _count(db, User, User.created_at >= month_start_utc()),
        "todayOrders": _count(db, Order, Order.created_at >= today_start, Order.created_at < today_end),
        "pendingOrders": by_status.get("pending", 0),
        "totalRevenue": float(revenue or 0),
        "ordersByStatus": {status: int(by_status.get(status, 0)) for status in ORDER_STATUSES},
    }
