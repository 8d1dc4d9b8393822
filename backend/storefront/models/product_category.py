from uuid import UUID

from sqlmodel import Field, SQLModel

from storefront.models.taxonomy_node import TaxonomyNodeBase


class ProductCategory(TaxonomyNodeBase, table=True):
    __tablename__ = "product_categories"

    parent_id: UUID | None = Field(
        default=None,
        foreign_key="product_categories.id",
        nullable=True,
        index=True,
    )


class ProductCategoryLink(SQLModel, table=True):
    __tablename__ = "product_category_links"

    product_id: UUID = Field(primary_key=True)
    category_id: UUID = Field(
        foreign_key="product_categories.id",
        primary_key=True,
        index=True,
    )
