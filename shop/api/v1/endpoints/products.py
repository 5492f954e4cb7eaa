"""Public storefront catalog endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shop.api.deps import resolve_language
from shop.db.session import get_db
from shop.services import catalog_service
from shop.utils.pagination import PageParams, page_params, pagination

router: APIRouter = APIRouter()


@router.get("")
def list_products(
    lang: str | None = Query(default=None),
    category_id: int | None = Query(default=None, alias="categoryId"),
    featured: bool | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    language = resolve_language(lang)
    rows, total = catalog_service.list_products(
        db,
        page=paging.page,
        limit=paging.limit,
        category_id=category_id,
        featured=featured,
        search=search,
    )
    return {
        "products": [catalog_service.serialize_product(product, language) for product in rows],
        "pagination": pagination(paging.page, paging.limit, total),
    }


@router.get("/categories")
def list_categories(lang: str | None = Query(default=None), db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    language = resolve_language(lang)
    return [catalog_service.serialize_category(category, language) for category in catalog_service.list_categories(db)]


@router.get("/{product_id}")
def get_product(product_id: int, lang: str | None = Query(default=None), db: Session = Depends(get_db)) -> dict[str, Any]:
    return catalog_service.serialize_product(catalog_service.get_product(db, product_id), resolve_language(lang))
