from __future__ import annotations

from dataclasses import dataclass

from sqlmodel import SQLModel

from storefront.models.blog_category import BlogCategory, BlogPostCategoryLink
from storefront.models.product_category import ProductCategory, ProductCategoryLink
from storefront.models.taxonomy_node import TaxonomyNodeBase


@dataclass(frozen=True)
class TaxonomyKind:
    key: str
    label: str
    node_model: type[TaxonomyNodeBase]
    link_model: type[SQLModel]
    route_prefix: str


PRODUCT_CATEGORIES = TaxonomyKind(
    key="product",
    label="Category",
    node_model=ProductCategory,
    link_model=ProductCategoryLink,
    route_prefix="/categories",
)

BLOG_CATEGORIES = TaxonomyKind(
    key="blog",
    label="Blog category",
    node_model=BlogCategory,
    link_model=BlogPostCategoryLink,
    route_prefix="/blog-categories",
)

TAXONOMY_KINDS: dict[str, TaxonomyKind] = {
    kind.key: kind for kind in (PRODUCT_CATEGORIES, BLOG_CATEGORIES)
}


def get_kind(key: str) -> TaxonomyKind:
    try:
        return TAXONOMY_KINDS[key]
    except KeyError as exc:
        raise ValueError(f"Unknown taxonomy kind: {key}") from exc
