"""Catalog request schemas."""

from pydantic import Field, field_validator

from shop.core.config import settings
from shop.schemas.common import ApiModel


class TranslationIn(ApiModel):
    language: str
    name: str = Field(min_length=1, max_length=255)

    @field_validator("language")
    @classmethod
    def check_language(cls, value: str) -> str:
        if value not in settings.supported_languages:
            raise ValueError(f"Unsupported language: {value}")
        return value


class ProductTranslationIn(TranslationIn):
    description: str | None = None


class CategoryTranslationIn(TranslationIn):
    pass


class MediaLinkIn(ApiModel):
    asset_id: int = Field(gt=0)
    is_thumbnail: bool = False


class ProductCreate(ApiModel):
    price: float = Field(gt=0)
    featured: bool = False
    category_id: int | None = Field(default=None, gt=0)
    translations: list[ProductTranslationIn] = Field(min_length=1)
    media: list[MediaLinkIn] = Field(default_factory=list)


class ProductUpdate(ApiModel):
    """Partial update; ``media`` replaces every link when present."""

    price: float | None = Field(default=None, gt=0)
    featured: bool | None = None
    category_id: int | None = Field(default=None, gt=0)
    translations: list[ProductTranslationIn] = Field(default_factory=list)
    media: list[MediaLinkIn] | None = None


class CategoryCreate(ApiModel):
    translations: list[CategoryTranslationIn] = Field(min_length=1)


class CategoryUpdate(ApiModel):
    translations: list[CategoryTranslationIn] = Field(default_factory=list)
