"""Schema exports."""

from shop.schemas.account import AddressCreate, AddressUpdate, ChangePasswordRequest, ProfileUpdate
from shop.schemas.admin import OrderStatusUpdate, UserRoleUpdate, UserStatusUpdate
from shop.schemas.auth import GoogleOAuthRequest, LoginRequest, RegisterRequest
from shop.schemas.cart import AddToCartRequest, CheckoutRequest, UpdateCartItemRequest
from shop.schemas.catalog import (
    CategoryCreate,
    CategoryTranslationIn,
    CategoryUpdate,
    MediaLinkIn,
    ProductCreate,
    ProductTranslationIn,
    ProductUpdate,
)

__all__ = [
    "AddressCreate",
    "AddressUpdate",
    "ChangePasswordRequest",
    "ProfileUpdate",
    "OrderStatusUpdate",
    "UserRoleUpdate",
    "UserStatusUpdate",
    "GoogleOAuthRequest",
    "LoginRequest",
    "RegisterRequest",
    "AddToCartRequest",
    "CheckoutRequest",
    "UpdateCartItemRequest",
    "CategoryCreate",
    "CategoryTranslationIn",
    "CategoryUpdate",
    "MediaLinkIn",
    "ProductCreate",
    "ProductTranslationIn",
    "ProductUpdate",
]
