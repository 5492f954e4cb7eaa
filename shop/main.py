"""FastAPI entrypoint for the storefront and back-office API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shop.api.v1.api import api_router
from shop.api.v1.endpoints import media
from shop.core.config import DEV_JWT_SECRET, settings
from shop.core.errors import install_error_handlers
from shop.db.base import Base
from shop.db.seed import ensure_super_admin
from shop.db.session import SessionLocal, engine
from shop.services.audit_service import sweep_expired

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
install_error_handlers(app)
app.include_router(api_router, prefix="/api")
app.include_router(media.router, tags=["media"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.app_env}


# Registered last so it never shadows /api, /docs or /media routes.
app.include_router(media.fallback_router, tags=["media"])


@app.on_event("startup")
def startup() -> None:
    if settings.jwt_secret_key == DEV_JWT_SECRET:
        logger.warning("JWT_SECRET_KEY not set; using development fallback secret.")
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        try:
            admin_present = ensure_super_admin(session)
            logger.info("[BOOTSTRAP] super admin present: %s", "yes" if admin_present else "no")
        except Exception:
            logger.exception("[BOOTSTRAP] Super admin seed failed; continuing startup.")
        try:
            sweep_expired(session)
        except Exception:
            logger.exception("[MAINTENANCE] Audit retention sweep failed; continuing startup.")
