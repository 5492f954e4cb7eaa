"""Scheduled maintenance tasks.

Run with ``python -m shop.maintenance [--days N]`` from cron or a platform
scheduler to apply the audit log retention window.
"""

from __future__ import annotations

import argparse
import logging

from shop.core.config import settings
from shop.db.session import SessionLocal
from shop.services.audit_service import purge_older_than

logger = logging.getLogger(__name__)


def run(days: int | None = None) -> int:
    """Delete audit entries older than ``days`` (default: the retention window)."""
    keep_days = days if days is not None else settings.audit_retention_days
    with SessionLocal() as session:
        deleted, cutoff = purge_older_than(session, keep_days)
    logger.info("[MAINTENANCE] Removed %s audit entries older than %s", deleted, cutoff.isoformat())
    return deleted


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Apply the audit log retention window.")
    parser.add_argument("--days", type=int, default=None, help="keep entries newer than this many days")
    args = parser.parse_args(argv)
    if args.days is not None and args.days < 1:
        parser.error("--days must be at least 1")

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    deleted = run(args.days)
    print(f"Deleted {deleted} audit log entries")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
