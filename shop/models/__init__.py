"""Application models package."""

from shop.models.audit_log import AdminLog
from shop.models.cart import Cart, CartItem
from shop.models.catalog import Category, CategoryTranslation, MediaAsset, Product, ProductMedia, ProductTranslation
from shop.models.order import Order, OrderItem
from shop.models.user import User, UserAddress, UserProfile

__all__ = [
    "User", "UserProfile", "UserAddress", "AdminLog", "Category", "CategoryTranslation", "Product",
    "ProductTranslation", "MediaAsset", "ProductMedia", "Cart", "CartItem", "Order", "OrderItem",
]
