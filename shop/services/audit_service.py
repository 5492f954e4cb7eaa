"""Admin audit log helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Request
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shop.core.config import settings
from shop.models import AdminLog

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """Best-effort originating client address."""
    connecting_ip = request.headers.get("CF-Connecting-IP")
    if connecting_ip:
        return connecting_ip.strip()
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def record(
    db: Session,
    actor_id: int,
    action: str,
    ip: str | None = None,
    user_agent: str | None = None,
    *,
    target_type: str | None = None,
    target_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> AdminLog | None:
    """Append an audit row. Failures are logged and never raised."""
    entry = AdminLog(
        admin_id=actor_id,
        action=action,
        target_type=target_type or "system",
        target_id=target_id,
        details=details,
        ip_address=ip or "unknown",
        user_agent=(user_agent or "unknown")[:500],
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[AUDIT] Failed to log admin action %s for admin_id=%s", action, actor_id)
        return None
    return entry


def record_request(
    db: Session,
    request: Request,
    actor_id: int,
    action: str,
    *,
    target_type: str | None = None,
    target_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> AdminLog | None:
    """``record`` with IP and user agent taken from ``request``."""
    return record(
        db,
        actor_id,
        action,
        client_ip(request),
        request.headers.get("User-Agent"),
        target_type=target_type,
        target_id=target_id,
        details=details,
    )


def _cutoff(days: int, now: datetime | None = None) -> datetime:
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)


def list_logs(
    db: Session,
    *,
    page: int,
    limit: int,
    action: str | None = None,
    admin_id: int | None = None,
) -> tuple[list[AdminLog], int]:
    """Return one page of entries inside the retention window and the total count."""
    conditions = [AdminLog.created_at >= _cutoff(settings.audit_retention_days)]
    if action:
        conditions.append(AdminLog.action == action)
    if admin_id is not None:
        conditions.append(AdminLog.admin_id == admin_id)

    rows = db.scalars(
        select(AdminLog)
        .options(joinedload(AdminLog.admin))
        .where(*conditions)
        .order_by(AdminLog.created_at.desc(), AdminLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = db.scalar(select(func.count()).select_from(AdminLog).where(*conditions)) or 0
    return list(rows), int(total)


def purge_older_than(db: Session, days: int, now: datetime | None = None) -> tuple[int, datetime]:
    """Delete entries strictly older than ``days`` days. Returns (count, cutoff)."""
    cutoff = _cutoff(days, now)
    result = db.execute(delete(AdminLog).where(AdminLog.created_at < cutoff))
    db.commit()
    return int(result.rowcount or 0), cutoff


def sweep_expired(db: Session) -> int:
    """Apply the standard retention window; safe to run repeatedly."""
    deleted, cutoff = purge_older_than(db, settings.audit_retention_days)
    logger.info("[MAINTENANCE] Audit retention sweep removed %s entries older than %s", deleted, cutoff.isoformat())
    return deleted
