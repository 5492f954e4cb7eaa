"""Content-addressable media ingestion and reference-counted removal."""

from __future__ import annotations

import hashlib
import logging
import re
import time
from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop.core.config import settings
from shop.core.errors import NotFound, ValidationError
from shop.models import MediaAsset, Product, ProductMedia
from shop.storage import MediaStorage

logger = logging.getLogger(__name__)

ALLOWED_TYPES: dict[str, frozenset[str]] = {
    "image": frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"}),
    "video": frozenset({"video/mp4", "video/mov", "video/quicktime", "video/avi", "video/x-msvideo", "video/webm"}),
}
MEDIA_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp", "mp4", "mov", "avi", "webm")
MEDIA_KEY_PATTERN = re.compile(r"\.(" + "|".join(MEDIA_EXTENSIONS) + r")$", re.IGNORECASE)


def sanitize_filename(value: str, max_length: int = 120) -> str:
    """Return a filesystem-friendly filename fragment."""
    normalized = re.sub(r"[\\/:*?\"<>|]+", "_", (value or "").strip())
    normalized = re.sub(r"\s+", "_", normalized)
    normalized = re.sub(r"_+", "_", normalized).strip("._")
    return (normalized or "upload")[-max_length:]


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def storage_key_for(filename: str, digest: str) -> str:
    """Return ``<epoch-ms>-<digest prefix>-<sanitized filename>``."""
    return f"{int(time.time() * 1000)}-{digest[:12]}-{sanitize_filename(filename)}"


def validate_upload(data: bytes, content_type: str | None, media_type: str) -> None:
    allowed = ALLOWED_TYPES.get(media_type)
    if allowed is None or (content_type or "").lower() not in allowed:
        raise ValidationError("Unsupported file type", details={"contentType": content_type, "type": media_type})
    if len(data) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise ValidationError(f"File too large (max {limit_mb}MB)")


def find_asset_by_hash(db: Session, digest: str) -> MediaAsset | None:
    return db.scalar(select(MediaAsset).where(MediaAsset.hash == digest).limit(1))


def reference_count(db: Session, asset_id: int) -> int:
    return int(db.scalar(select(func.count()).select_from(ProductMedia).where(ProductMedia.asset_id == asset_id)) or 0)


def _next_display_order(db: Session, product_id: int) -> int:
    current_max = db.scalar(select(func.max(ProductMedia.display_order)).where(ProductMedia.product_id == product_id))
    return 0 if current_max is None else int(current_max) + 1


def link_asset(db: Session, product_id: int, asset_id: int, *, thumbnail: bool = False) -> ProductMedia:
    """Append a media link to a product, or make it the thumbnail."""
    if db.get(Product, product_id) is None:
        raise NotFound("Product not found")

    next_order = _next_display_order(db, product_id)
    if thumbnail:
        for previous in db.scalars(
            select(ProductMedia).where(ProductMedia.product_id == product_id, ProductMedia.display_order == 0)
        ).all():
            previous.display_order = next_order
            next_order += 1
        display_order = 0
    else:
        display_order = next_order

    link = ProductMedia(product_id=product_id, asset_id=asset_id, display_order=display_order)
    db.add(link)
    db.flush()
    return link


def ingest(
    db: Session,
    storage: MediaStorage,
    data: bytes,
    filename: str,
    content_type: str | None,
    media_type: str = "image",
    *,
    product_id: int | None = None,
    thumbnail: bool = False,
) -> tuple[MediaAsset, ProductMedia | None, bool]:
    """Store ``data`` once per distinct digest.

    Returns ``(asset, link, created)``; ``created`` is False when an asset with
    the same digest already existed and no blob was written.
    """
    validate_upload(data, content_type, media_type)
    if product_id is not None and db.get(Product, product_id) is None:
        raise NotFound("Product not found")
    digest = content_hash(data)

    asset = find_asset_by_hash(db, digest)
    created = asset is None
    key = None
    try:
        if asset is None:
            key = storage_key_for(filename, digest)
            storage.bucket_for(media_type).put(key, data)
            asset = MediaAsset(
                hash=digest,
                storage_key=key,
                size=len(data),
                media_type=media_type,
                mime_type=(content_type or "").lower(),
                filename=filename or key,
                url=f"/media/{key}",
            )
            db.add(asset)
            db.flush()
            logger.info("[MEDIA] Stored new %s asset id=%s key=%s size=%s", media_type, asset.id, key, len(data))
        else:
            logger.info("[MEDIA] Reusing asset id=%s for duplicate upload %s", asset.id, filename)

        link = None
        if product_id is not None:
            link = link_asset(db, product_id, asset.id, thumbnail=thumbnail)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        if key is not None:
            delete_blobs(storage, [(media_type, key)])
        raise

    db.refresh(asset)
    return asset, link, created


def release_asset(db: Session, asset: MediaAsset) -> tuple[str, str] | None:
    """Mark ``asset`` for deletion once nothing links to it.

    Returns the ``(media_type, storage_key)`` blob to remove with
    :func:`delete_blobs` after the caller commits, or None if the asset is
    still referenced.
    """
    if reference_count(db, asset.id) > 0:
        return None
    db.delete(asset)
    return asset.media_type, asset.storage_key


def delete_blobs(storage: MediaStorage, blobs: Iterable[tuple[str, str]]) -> None:
    """Remove blobs whose asset rows are gone. Failures are logged, not raised."""
    for media_type, key in blobs:
        try:
            storage.bucket_for(media_type).delete(key)
        except OSError:
            logger.warning("[MEDIA] Failed to delete blob %s from %s bucket", key, media_type, exc_info=True)


def unlink(db: Session, storage: MediaStorage, link_id: int) -> tuple[dict[str, Any], bool]:
    """Remove one product-media link. Returns (link snapshot, asset_deleted)."""
    link = db.get(ProductMedia, link_id)
    if link is None:
        raise NotFound("Media not found")

    asset = link.asset
    snapshot = {"assetId": link.asset_id, "productId": link.product_id, "url": asset.url}
    db.delete(link)
    db.flush()

    released = release_asset(db, asset)
    db.commit()
    if released is not None:
        delete_blobs(storage, [released])
    return snapshot, released is not None


def set_thumbnail(db: Session, product_id: int, link_id: int) -> ProductMedia:
    """Move ``link_id`` to display order 0; the old thumbnail goes to the end."""
    link = db.scalar(
        select(ProductMedia).where(ProductMedia.id == link_id, ProductMedia.product_id == product_id).limit(1)
    )
    if link is None:
        raise NotFound("Media not found")

    next_order = _next_display_order(db, product_id)
    for previous in db.scalars(
        select(ProductMedia).where(
            ProductMedia.product_id == product_id,
            ProductMedia.display_order == 0,
            ProductMedia.id != link_id,
        )
    ).all():
        previous.display_order = next_order
        next_order += 1
    link.display_order = 0
    db.commit()
    db.refresh(link)
    return link


def serialize_link(link: ProductMedia) -> dict[str, Any]:
    return {
        "id": link.id,
        "assetId": link.asset_id,
        "url": link.asset.url,
        "type": link.asset.media_type,
        "filename": link.asset.storage_key,
        "size": link.asset.size,
        "displayOrder": link.display_order,
        "isThumbnail": link.display_order == 0,
    }
