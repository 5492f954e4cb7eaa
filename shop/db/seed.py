"""Database seeding helpers."""

import logging

from sqlalchemy.orm import Session

from shop.core.config import settings
from shop.services.user_service import create_user, get_user_by_email

logger = logging.getLogger(__name__)


def ensure_super_admin(session: Session) -> bool:
    """Create or promote the configured bootstrap super admin.

    Returns:
        bool: True when an account for ``ADMIN_EMAIL`` existed before this call.
    """
    if not settings.admin_email or not settings.admin_password:
        logger.info("[BOOTSTRAP] ADMIN_EMAIL/ADMIN_PASSWORD not set; skipping super admin seed.")
        return False

    existing = get_user_by_email(session, settings.admin_email)
    if existing is not None:
        if existing.role != "super_admin" or existing.status != "active":
            existing.role = "super_admin"
            existing.status = "active"
            session.commit()
            logger.warning("[BOOTSTRAP] Existing account %s promoted to active super_admin.", existing.email)
        else:
            logger.info("[BOOTSTRAP] Super admin exists")
        return True

    create_user(session, settings.admin_email, settings.admin_password, role="super_admin")
    logger.warning("[SECURITY] Super admin %s created from environment. Rotate the password.", settings.admin_email)
    return False
