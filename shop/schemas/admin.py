"""Back-office request schemas."""

from typing import Literal

from pydantic import Field

from shop.models.order import ORDER_STATUSES
from shop.schemas.common import ApiModel

OrderStatus = Literal[ORDER_STATUSES]


class UserStatusUpdate(ApiModel):
    status: Literal["active", "disabled", "suspended"]


class UserRoleUpdate(ApiModel):
    role: Literal["user", "moderator", "admin", "super_admin"]


class OrderStatusUpdate(ApiModel):
    status: OrderStatus
    reason: str | None = Field(default=None, max_length=500)
