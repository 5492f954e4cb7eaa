"""Product and category persistence helpers shared by storefront and admin routes."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from shop.core.errors import NotFound, ValidationError
from shop.models import (
    CartItem,
    Category,
    CategoryTranslation,
    MediaAsset,
    Product,
    ProductMedia,
    ProductTranslation,
)
from shop.schemas.catalog import CategoryTranslationIn, MediaLinkIn, ProductTranslationIn
from shop.services.media_service import delete_blobs, release_asset, serialize_link
from shop.storage import MediaStorage


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _product_options():
    return (
        selectinload(Product.translations),
        selectinload(Product.media).selectinload(ProductMedia.asset),
        selectinload(Product.category).selectinload(Category.translations),
    )


def get_product(db: Session, product_id: int) -> Product:
    product = db.scalar(select(Product).options(*_product_options()).where(Product.id == product_id))
    if product is None:
        raise NotFound("Product not found")
    return product


def get_category(db: Session, category_id: int) -> Category:
    category = db.scalar(
        select(Category).options(selectinload(Category.translations)).where(Category.id == category_id)
    )
    if category is None:
        raise NotFound("Category not found")
    return category


def ensure_category_exists(db: Session, category_id: int | None) -> None:
    if category_id is not None and db.get(Category, category_id) is None:
        raise ValidationError("Category not found", details={"categoryId": category_id})


def upsert_product_translations(db: Session, product: Product, translations: Iterable[ProductTranslationIn]) -> None:
    """Insert or update one row per supplied language; other languages are left alone."""
    existing = {row.language: row for row in product.translations}
    for item in translations:
        row = existing.get(item.language)
        if row is None:
            row = ProductTranslation(language=item.language, name=item.name, description=item.description or "")
            product.translations.append(row)
            existing[item.language] = row
        else:
            row.name = item.name
            if item.description is not None:
                row.description = item.description
    db.flush()


def upsert_category_translations(db: Session, category: Category, translations: Iterable[CategoryTranslationIn]) -> None:
    existing = {row.language: row for row in category.translations}
    for item in translations:
        row = existing.get(item.language)
        if row is None:
            row = CategoryTranslation(language=item.language, name=item.name)
            category.translations.append(row)
            existing[item.language] = row
        else:
            row.name = item.name
    db.flush()


def _release_unlinked(db: Session, asset_ids: Iterable[int]) -> list[tuple[str, str]]:
    released = []
    for asset_id in asset_ids:
        asset = db.get(MediaAsset, asset_id)
        if asset is not None:
            blob = release_asset(db, asset)
            if blob is not None:
                released.append(blob)
    return released


def replace_product_media(db: Session, product: Product, media: list[MediaLinkIn]) -> list[tuple[str, str]]:
    """Drop every link of ``product`` and insert ``media`` in order.

    A thumbnail entry gets display order 0, everything else its 1-based
    position. Assets left without links afterwards are released; their
    blobs are returned for deletion once the caller has committed.
    """
    asset_ids = {item.asset_id for item in media}
    if asset_ids:
        known = set(db.scalars(select(MediaAsset.id).where(MediaAsset.id.in_(asset_ids))).all())
        missing = sorted(asset_ids - known)
        if missing:
            raise ValidationError("Unknown media asset", details={"assetIds": missing})

    previous_asset_ids = {link.asset_id for link in product.media}
    db.execute(delete(ProductMedia).where(ProductMedia.product_id == product.id))
    db.flush()
    db.expire(product, ["media"])

    for index, item in enumerate(media):
        db.add(
            ProductMedia(
                product_id=product.id,
                asset_id=item.asset_id,
                display_order=0 if item.is_thumbnail else index + 1,
            )
        )
    db.flush()

    return _release_unlinked(db, previous_asset_ids - asset_ids)


def delete_product(db: Session, storage: MediaStorage, product: Product) -> None:
    """Delete a product with its translations and links, releasing orphaned assets."""
    asset_ids = {link.asset_id for link in product.media}
    db.execute(delete(CartItem).where(CartItem.product_id == product.id))
    db.delete(product)
    db.flush()
    released = _release_unlinked(db, asset_ids)
    db.commit()
    delete_blobs(storage, released)


def delete_category(db: Session, category: Category) -> None:
    """Delete a category; products keep existing with no category."""
    db.execute(update(Product).where(Product.category_id == category.id).values(category_id=None))
    db.delete(category)
    db.commit()


def list_products(
    db: Session,
    *,
    page: int,
    limit: int,
    category_id: int | None = None,
    featured: bool | None = None,
    search: str | None = None,
) -> tuple[list[Product], int]:
    """Return a page of products (newest first) and the total match count."""
    conditions = []
    if category_id is not None:
        conditions.append(Product.category_id == category_id)
    if featured is not None:
        conditions.append(Product.featured.is_(featured))
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            Product.translations.any(
                or_(ProductTranslation.name.ilike(pattern), ProductTranslation.description.ilike(pattern))
            )
        )

    rows = db.scalars(
        select(Product)
        .options(*_product_options())
        .where(*conditions)
        .order_by(Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = db.scalar(select(func.count()).select_from(Product).where(*conditions)) or 0
    return list(rows), int(total)


def list_categories(db: Session) -> list[Category]:
    return list(
        db.scalars(select(Category).options(selectinload(Category.translations)).order_by(Category.id)).all()
    )


def category_name(category: Category | None, lang: str) -> str | None:
    if category is None:
        return None
    row = next((t for t in category.translations if t.language == lang), None)
    return row.name if row else None


def serialize_category(category: Category, lang: str) -> dict[str, Any]:
    names = {row.language: row.name for row in category.translations}
    return {"id": category.id, "name": names.get(lang) or "Unknown Category", "names": names}


def serialize_product(product: Product, lang: str) -> dict[str, Any]:
    """Storefront view of a product in one language."""
    translation = product.translation(lang)
    thumbnail = product.thumbnail
    return {
        "id": product.id,
        "name": translation.name if translation else None,
        "description": translation.description if translation else None,
        "price": float(product.price),
        "featured": product.featured,
        "categoryId": product.category_id,
        "categoryName": category_name(product.category, lang),
        "thumbnailUrl": thumbnail.url if thumbnail else None,
        "media": [serialize_link(link) for link in product.media],
    }


def serialize_admin_product(product: Product, lang: str) -> dict[str, Any]:
    """Back-office view with every language and media link."""
    payload = serialize_product(product, lang)
    payload.update(
        {
            "translations": {
                row.language: {"name": row.name, "description": row.description} for row in product.translations
            },
            "mediaCount": len(product.media),
            "createdAt": product.created_at.isoformat() if product.created_at else None,
            "updatedAt": product.updated_at.isoformat() if product.updated_at else None,
        }
    )
    return payload
