"""Pagination helpers for list endpoints."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Query


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int


def page_params(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> PageParams:
    """FastAPI dependency for 1-based ``page`` / ``limit`` query parameters."""
    return PageParams(page=page, limit=limit)


def pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {"page": page, "limit": limit, "total": total, "totalPages": (total + limit - 1) // limit}
