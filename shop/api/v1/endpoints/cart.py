"""Shopping cart and checkout endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shop.api.deps import get_current_user, resolve_language
from shop.db.session import get_db
from shop.models import User
from shop.schemas.cart import AddToCartRequest, CheckoutRequest, UpdateCartItemRequest
from shop.services import cart_service

router: APIRouter = APIRouter()


@router.get("")
def get_cart(
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    cart = cart_service.get_or_create_cart(db, current_user)
    return cart_service.serialize_cart(cart, resolve_language(lang))


@router.post("/items")
def add_item(
    payload: AddToCartRequest,
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    cart = cart_service.add_item(db, current_user, payload.product_id, payload.quantity)
    return cart_service.serialize_cart(cart, resolve_language(lang))


@router.put("/items/{item_id}")
def update_item(
    item_id: int,
    payload: UpdateCartItemRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    cart_service.update_item(db, current_user, item_id, payload.quantity)
    return {"message": "Cart item updated successfully"}


@router.delete("/items/{item_id}")
def remove_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    cart_service.remove_item(db, current_user, item_id)
    return {"message": "Cart item removed successfully"}


@router.delete("")
def clear_cart(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict[str, str]:
    cart_service.clear(db, current_user)
    return {"message": "Cart cleared"}


@router.post("/checkout", status_code=status.HTTP_201_CREATED)
def checkout(
    payload: CheckoutRequest | None = None,
    lang: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Create an order from the stored cart."""
    address_id = payload.address_id if payload is not None else None
    order = cart_service.checkout(db, current_user, address_id, resolve_language(lang))
    return {"success": True, "orderId": order.id, "totalAmount": float(order.total_amount)}
