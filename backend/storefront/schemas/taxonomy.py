from __future__ import annotations

from datetime import datetime
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

SLUG_REGEX = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
DESCRIPTION_MAX_LENGTH = 15000


def _validate_image_reference(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    value = value.strip()
    if value.startswith("/"):
        return value
    parsed = urlparse(value)
    if parsed.scheme in {"http", "https"} and parsed.netloc:
        return value
    raise ValueError("Must be a local path (starting with /) or an http(s) URL")


class CategorySeo(BaseModel):
    title: str | None = Field(default=None, max_length=70)
    description: str | None = Field(default=None, max_length=200)
    og_image: str | None = None
    noindex: bool | None = None

    @field_validator("og_image")
    @classmethod
    def validate_og_image(cls, value: str | None) -> str | None:
        return _validate_image_reference(value)


class CategoryCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=120, pattern=SLUG_REGEX)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    parent_id: UUID | None = None
    image: str | None = None
    sort_order: int | None = Field(default=None, ge=0)
    is_active: bool = True
    seo: CategorySeo | None = None

    @field_validator("image")
    @classmethod
    def validate_image(cls, value: str | None) -> str | None:
        return _validate_image_reference(value)


class CategoryUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=120, pattern=SLUG_REGEX)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    parent_id: UUID | None = None
    image: str | None = None
    sort_order: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    seo: CategorySeo | None = None

    @field_validator("image")
    @classmethod
    def validate_image(cls, value: str | None) -> str | None:
        return _validate_image_reference(value)


class CategoryOrderUpdate(BaseModel):
    id: UUID
    sort_order: int = Field(ge=0)


class CategoryReorderRequest(BaseModel):
    items: list[CategoryOrderUpdate] = Field(min_length=1)


class CategorySortOrderRequest(BaseModel):
    sort_order: int = Field(ge=0)


class CategorySeoResponse(BaseModel):
    title: str
    description: str
    og_image: str | None
    noindex: bool


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str
    parent_id: str | None
    image: str | None
    sort_order: int
    is_active: bool
    seo: CategorySeoResponse
    created_at: datetime
    updated_at: datetime


class CategoryListResponse(BaseModel):
    items: list[CategoryResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class CategoryTreeItem(BaseModel):
    id: str
    name: str
    slug: str
    description: str
    parent_id: str | None
    image: str | None
    sort_order: int
    is_active: bool
    depth: int
    path: str
    children: list[CategoryTreeItem] = Field(default_factory=list)


class CategoryTreeResponse(BaseModel):
    categories: list[CategoryTreeItem]


class BreadcrumbItem(BaseModel):
    id: str
    name: str
    slug: str


class BreadcrumbResponse(BaseModel):
    items: list[BreadcrumbItem]
    depth: int


class DescendantsResponse(BaseModel):
    ids: list[str]


class CategoryOption(BaseModel):
    value: str
    label: str
    depth: int
    disabled: bool


class CategoryOptionsResponse(BaseModel):
    options: list[CategoryOption]


class ReorderResponse(BaseModel):
    updated: int
