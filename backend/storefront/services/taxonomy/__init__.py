from storefront.services.taxonomy.kinds import (
    BLOG_CATEGORIES,
    PRODUCT_CATEGORIES,
    TAXONOMY_KINDS,
    TaxonomyKind,
    get_kind,
)
from storefront.services.taxonomy.service import TaxonomyService
from storefront.services.taxonomy.tree import TreeNode, build_tree, flatten_tree

__all__ = [
    "BLOG_CATEGORIES",
    "PRODUCT_CATEGORIES",
    "TAXONOMY_KINDS",
    "TaxonomyKind",
    "TaxonomyService",
    "TreeNode",
    "build_tree",
    "flatten_tree",
    "get_kind",
]
