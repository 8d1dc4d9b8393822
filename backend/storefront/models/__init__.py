from storefront.models.blog_category import BlogCategory, BlogPostCategoryLink
from storefront.models.product_category import ProductCategory, ProductCategoryLink
from storefront.models.taxonomy_node import TaxonomyNodeBase

__all__ = [
    "BlogCategory",
    "BlogPostCategoryLink",
    "ProductCategory",
    "ProductCategoryLink",
    "TaxonomyNodeBase",
]
