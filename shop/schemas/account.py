"""Profile, password and address schemas."""

from typing import Literal

from pydantic import Field

from shop.schemas.common import ApiModel


class ProfileUpdate(ApiModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=128)
    last_name: str | None = Field(default=None, min_length=1, max_length=128)
    phone: str | None = Field(default=None, max_length=32)
    gender: Literal["male", "female", "other"] | None = None
    avatar: str | None = Field(default=None, max_length=500)


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)


class AddressCreate(ApiModel):
    title: str = Field(min_length=1, max_length=64)
    recipient_name: str = Field(min_length=1, max_length=128)
    recipient_phone: str = Field(min_length=1, max_length=32)
    country: str = Field(min_length=1, max_length=64)
    province: str = Field(min_length=1, max_length=64)
    city: str = Field(min_length=1, max_length=64)
    district: str | None = Field(default=None, max_length=64)
    street_address: str = Field(min_length=1, max_length=255)
    postal_code: str | None = Field(default=None, max_length=16)
    is_default: bool = False


class AddressUpdate(ApiModel):
    title: str | None = Field(default=None, min_length=1, max_length=64)
    recipient_name: str | None = Field(default=None, min_length=1, max_length=128)
    recipient_phone: str | None = Field(default=None, min_length=1, max_length=32)
    country: str | None = Field(default=None, min_length=1, max_length=64)
    province: str | None = Field(default=None, min_length=1, max_length=64)
    city: str | None = Field(default=None, min_length=1, max_length=64)
    district: str | None = Field(default=None, max_length=64)
    street_address: str | None = Field(default=None, min_length=1, max_length=255)
    postal_code: str | None = Field(default=None, max_length=16)
    is_default: bool | None = None
