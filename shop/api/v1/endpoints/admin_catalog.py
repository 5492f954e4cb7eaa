"""Back-office product, category and media endpoints."""

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from shop.api.deps import require_admin, resolve_language
from shop.db.session import get_db
from shop.models import Category, Product, User
from shop.schemas.catalog import CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate
from shop.services import audit_service, catalog_service, media_service
from shop.storage import MediaStorage, get_storage
from shop.utils.pagination import PageParams, page_params, pagination

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/products")
def list_products(
    lang: str | None = Query(default=None),
    category_id: int | None = Query(default=None, alias="categoryId"),
    featured: bool | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    language = resolve_language(lang)
    rows, total = catalog_service.list_products(
        db, page=paging.page, limit=paging.limit, category_id=category_id, featured=featured, search=search
    )
    return {
        "products": [catalog_service.serialize_admin_product(product, language) for product in rows],
        "pagination": pagination(paging.page, paging.limit, total),
    }


@router.post("/products", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_storage),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    catalog_service.ensure_category_exists(db, payload.category_id)
    product = Product(
        price=catalog_service.to_decimal(payload.price),
        featured=payload.featured,
        category_id=payload.category_id,
    )
    db.add(product)
    db.flush()
    catalog_service.upsert_product_translations(db, product, payload.translations)
    released = []
    if payload.media:
        released = catalog_service.replace_product_media(db, product, payload.media)
    db.commit()
    media_service.delete_blobs(storage, released)

    product = catalog_service.get_product(db, product.id)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "create_product",
        target_type="product",
        target_id=product.id,
        details={"languages": [item.language for item in payload.translations], "price": payload.price},
    )
    return catalog_service.serialize_admin_product(product, resolve_language(lang))


@router.get("/products/{product_id}")
def get_product(
    product_id: int,
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    return catalog_service.serialize_admin_product(catalog_service.get_product(db, product_id), resolve_language(lang))


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_storage),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    """Update base fields, upsert translations and, when given, replace the media list."""
    product = catalog_service.get_product(db, product_id)
    fields = payload.model_fields_set

    if "category_id" in fields:
        catalog_service.ensure_category_exists(db, payload.category_id)
        product.category_id = payload.category_id
    if payload.price is not None:
        product.price = catalog_service.to_decimal(payload.price)
    if payload.featured is not None:
        product.featured = payload.featured
    db.flush()

    catalog_service.upsert_product_translations(db, product, payload.translations)
    released = []
    if payload.media is not None:
        released = catalog_service.replace_product_media(db, product, payload.media)
    db.commit()
    media_service.delete_blobs(storage, released)

    product = catalog_service.get_product(db, product_id)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "update_product",
        target_type="product",
        target_id=product.id,
        details={"fields": sorted(fields)},
    )
    return catalog_service.serialize_admin_product(product, resolve_language(lang))


@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_storage),
    admin: User = Depends(require_admin),
) -> dict[str, str]:
    product = catalog_service.get_product(db, product_id)
    catalog_service.delete_product(db, storage, product)
    audit_service.record_request(db, request, admin.id, "delete_product", target_type="product", target_id=product_id)
    return {"message": "Product deleted successfully"}


@router.get("/products/{product_id}/media")
def list_product_media(
    product_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> list[dict[str, Any]]:
    product = catalog_service.get_product(db, product_id)
    return [media_service.serialize_link(link) for link in product.media]


@router.post("/products/{product_id}/media/{link_id}/thumbnail")
def set_thumbnail(
    product_id: int,
    link_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    link = media_service.set_thumbnail(db, product_id, link_id)
    audit_service.record_request(
        db, request, admin.id, "set_thumbnail", target_type="product", target_id=product_id, details={"linkId": link_id}
    )
    return media_service.serialize_link(link)


@router.post("/media/upload", status_code=status.HTTP_201_CREATED)
def upload_media(
    request: Request,
    file: UploadFile = File(...),
    media_type: Literal["image", "video"] = Form(default="image", alias="type"),
    product_id: int | None = Form(default=None, alias="productId"),
    is_thumbnail: bool = Form(default=False, alias="isThumbnail"),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_storage),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    """Store an upload once per content digest and optionally link it to a product."""
    data = file.file.read()
    asset, link, created = media_service.ingest(
        db,
        storage,
        data,
        file.filename or "upload",
        file.content_type,
        media_type,
        product_id=product_id,
        thumbnail=is_thumbnail,
    )
    audit_service.record_request(
        db,
        request,
        admin.id,
        "upload_media",
        target_type="media",
        target_id=asset.id,
        details={"filename": file.filename, "size": asset.size, "productId": product_id, "deduplicated": not created},
    )
    return {
        "success": True,
        "assetId": asset.id,
        "url": asset.url,
        "type": asset.media_type,
        "size": asset.size,
        "hash": asset.hash,
        "deduplicated": not created,
        "link": media_service.serialize_link(link) if link is not None else None,
    }


@router.delete("/media/{link_id}")
def delete_media(
    link_id: int,
    request: Request,
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_storage),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    snapshot, asset_deleted = media_service.unlink(db, storage, link_id)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "delete_media",
        target_type="media",
        target_id=snapshot["assetId"],
        details={**snapshot, "assetDeleted": asset_deleted},
    )
    return {"message": "Media removed", "assetDeleted": asset_deleted}


@router.get("/categories")
def list_categories(
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> list[dict[str, Any]]:
    language = resolve_language(lang)
    return [catalog_service.serialize_category(category, language) for category in catalog_service.list_categories(db)]


@router.post("/categories", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    category = Category()
    db.add(category)
    db.flush()
    catalog_service.upsert_category_translations(db, category, payload.translations)
    db.commit()
    category = catalog_service.get_category(db, category.id)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "create_category",
        target_type="category",
        target_id=category.id,
        details={"names": {item.language: item.name for item in payload.translations}},
    )
    return catalog_service.serialize_category(category, resolve_language(lang))


@router.put("/categories/{category_id}")
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    category = catalog_service.get_category(db, category_id)
    catalog_service.upsert_category_translations(db, category, payload.translations)
    db.commit()
    category = catalog_service.get_category(db, category_id)
    audit_service.record_request(
        db,
        request,
        admin.id,
        "update_category",
        target_type="category",
        target_id=category.id,
        details={"names": {item.language: item.name for item in payload.translations}},
    )
    return catalog_service.serialize_category(category, resolve_language(lang))


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, str]:
    category = catalog_service.get_category(db, category_id)
    catalog_service.delete_category(db, category)
    audit_service.record_request(
        db, request, admin.id, "delete_category", target_type="category", target_id=category_id
    )
    return {"message": "Category deleted successfully"}
