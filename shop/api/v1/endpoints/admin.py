"""Back-office audit log and dashboard endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from shop.api.deps import require_admin, require_super_admin
from shop.core.config import settings
from shop.db.session import get_db
from shop.models import AdminLog, User
from shop.services import audit_service, dashboard_service
from shop.utils.pagination import PageParams, page_params, pagination

router: APIRouter = APIRouter()


def serialize_log(entry: AdminLog) -> dict[str, Any]:
    return {
        "id": entry.id,
        "action": entry.action,
        "targetType": entry.target_type,
        "targetId": entry.target_id,
        "details": entry.details,
        "ipAddress": entry.ip_address,
        "userAgent": entry.user_agent,
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
        "admin": {"id": entry.admin.id, "email": entry.admin.email, "role": entry.admin.role} if entry.admin else None,
    }


@router.get("/logs")
def list_logs(
    action: str | None = Query(default=None),
    admin_id: int | None = Query(default=None, alias="adminId"),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    """Entries inside the retention window, newest first. Nothing is deleted here."""
    rows, total = audit_service.list_logs(db, page=paging.page, limit=paging.limit, action=action, admin_id=admin_id)
    return {
        "logs": [serialize_log(entry) for entry in rows],
        "pagination": pagination(paging.page, paging.limit, total),
    }


@router.delete("/logs/cleanup")
def cleanup_logs(
    request: Request,
    days: int = Query(default=settings.audit_cleanup_default_days, ge=1),
    db: Session = Depends(get_db),
    admin: User = Depends(require_super_admin),
) -> dict[str, Any]:
    deleted, cutoff = audit_service.purge_older_than(db, days)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "cleanup_logs",
        target_type="admin_logs",
        details={"daysToKeep": days, "cutoffDate": cutoff.isoformat(), "deletedCount": deleted},
    )
    return {
        "success": True,
        "deletedCount": deleted,
        "cutoffDate": cutoff.isoformat(),
        "message": f"Deleted {deleted} log entries older than {days} days",
    }


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), admin: User = Depends(require_admin)) -> dict[str, Any]:
    return dashboard_service.get_stats(db)
