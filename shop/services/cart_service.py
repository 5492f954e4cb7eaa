"""Server-side cart and checkout."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from shop.core.errors import NotFound, NotFoundOrUnauthorized, ValidationError
from shop.models import Cart, CartItem, Order, OrderItem, Product, ProductMedia, User
from shop.services.user_service import get_owned_address

logger = logging.getLogger(__name__)


def _load_cart(db: Session, user_id: int) -> Cart | None:
    return db.scalar(
        select(Cart)
        .options(
            selectinload(Cart.items).selectinload(CartItem.product).selectinload(Product.translations),
            selectinload(Cart.items)
            .selectinload(CartItem.product)
            .selectinload(Product.media)
            .selectinload(ProductMedia.asset),
        )
        .where(Cart.user_id == user_id)
    )


def get_or_create_cart(db: Session, user: User) -> Cart:
    """Return the user's cart, creating an empty one on first access."""
    cart = _load_cart(db, user.id)
    if cart is None:
        db.add(Cart(user_id=user.id))
        db.commit()
        cart = _load_cart(db, user.id)
    return cart


def _owned_item(db: Session, user: User, item_id: int) -> CartItem:
    item = db.scalar(
        select(CartItem).join(Cart).where(CartItem.id == item_id, Cart.user_id == user.id).limit(1)
    )
    if item is None:
        raise NotFoundOrUnauthorized("Cart item not found or unauthorized")
    return item


def add_item(db: Session, user: User, product_id: int, quantity: int = 1) -> Cart:
    """Add ``quantity`` of a product; an existing line has its quantity increased."""
    if db.get(Product, product_id) is None:
        raise NotFound("Product not found")

    cart = get_or_create_cart(db, user)
    existing = next((item for item in cart.items if item.product_id == product_id), None)
    if existing is not None:
        existing.quantity += quantity
    else:
        db.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))
    db.commit()
    db.expire_all()
    return get_or_create_cart(db, user)


def update_item(db: Session, user: User, item_id: int, quantity: int) -> None:
    item = _owned_item(db, user, item_id)
    item.quantity = quantity
    db.commit()


def remove_item(db: Session, user: User, item_id: int) -> None:
    item = _owned_item(db, user, item_id)
    db.delete(item)
    db.commit()


def clear(db: Session, user: User) -> None:
    cart = db.scalar(select(Cart).where(Cart.user_id == user.id))
    if cart is not None:
        cart.items.clear()
        db.commit()


def serialize_cart(cart: Cart, lang: str) -> dict[str, Any]:
    items: list[dict[str, Any]] = []
    total = Decimal("0.00")
    total_quantity = 0
    for item in cart.items:
        product = item.product
        translation = product.translation(lang)
        thumbnail = product.thumbnail
        line_total = product.price * item.quantity
        total += line_total
        total_quantity += item.quantity
        items.append(
            {
                "id": item.id,
                "productId": product.id,
                "quantity": item.quantity,
                "name": translation.name if translation else "Unknown Product",
                "description": (translation.description if translation else None) or "",
                "price": float(product.price),
                "thumbnailUrl": thumbnail.url if thumbnail else None,
                "lineTotal": float(line_total),
            }
        )
    return {
        "id": cart.id,
        "userId": cart.user_id,
        "items": items,
        "totalAmount": float(total),
        "totalQuantity": total_quantity,
    }


def checkout(db: Session, user: User, address_id: int | None = None, lang: str = "en") -> Order:
    """Turn the stored cart into a pending order and empty the cart.

    Prices and product names are copied from the catalog at this moment.
    """
    cart = _load_cart(db, user.id)
    if cart is None or not cart.items:
        raise ValidationError("Cart is empty")

    address = None
    if address_id is not None:
        address = get_owned_address(db, user, address_id)
        if address is None:
            raise NotFoundOrUnauthorized("Address not found or unauthorized")

    order = Order(user_id=user.id, status="pending")
    if address is not None:
        order.shipping_recipient_name = address.recipient_name
        order.shipping_recipient_phone = address.recipient_phone
        order.shipping_country = address.country
        order.shipping_province = address.province
        order.shipping_city = address.city
        order.shipping_district = address.district
        order.shipping_street_address = address.street_address
        order.shipping_postal_code = address.postal_code

    total = Decimal("0.00")
    for item in cart.items:
        product = item.product
        translation = product.translation(lang)
        total += product.price * item.quantity
        order.items.append(
            OrderItem(
                product_id=product.id,
                product_name=translation.name if translation else f"Product #{product.id}",
                quantity=item.quantity,
                price_per_item=product.price,
            )
        )
    order.total_amount = total
    db.add(order)
    cart.items.clear()
    db.commit()
    db.refresh(order)
    logger.info("[CHECKOUT] Created order id=%s user_id=%s total=%s", order.id, user.id, order.total_amount)
    return order
