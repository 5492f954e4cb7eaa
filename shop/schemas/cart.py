"""Cart and checkout schemas."""

from pydantic import Field

from shop.schemas.common import ApiModel


class AddToCartRequest(ApiModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(default=1, ge=1)


class UpdateCartItemRequest(ApiModel):
    quantity: int = Field(ge=1)


class CheckoutRequest(ApiModel):
    """Checkout options. Any client-side item list is ignored."""

    address_id: int | None = Field(default=None, gt=0)
