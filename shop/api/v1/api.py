"""API router composition."""

from fastapi import APIRouter

from shop.api.v1.endpoints import (
    addresses,
    admin,
    admin_catalog,
    admin_orders,
    admin_users,
    auth,
    cart,
    orders,
    products,
    profile,
)

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(cart.router, prefix="/cart", tags=["cart"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(profile.router, prefix="/profile", tags=["profile"])
api_router.include_router(addresses.router, prefix="/addresses", tags=["addresses"])
api_router.include_router(admin_users.router, prefix="/admin/users", tags=["admin"])
api_router.include_router(admin_orders.router, prefix="/admin/orders", tags=["admin"])
api_router.include_router(admin_catalog.router, prefix="/admin", tags=["admin"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
