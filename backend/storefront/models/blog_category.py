from uuid import UUID

from sqlmodel import Field, SQLModel

from storefront.models.taxonomy_node import TaxonomyNodeBase


class BlogCategory(TaxonomyNodeBase, table=True):
    __tablename__ = "blog_categories"

    parent_id: UUID | None = Field(
        default=None,
        foreign_key="blog_categories.id",
        nullable=True,
        index=True,
    )


class BlogPostCategoryLink(SQLModel, table=True):
    __tablename__ = "blog_post_category_links"

    post_id: UUID = Field(primary_key=True)
    category_id: UUID = Field(
        foreign_key="blog_categories.id",
        primary_key=True,
        index=True,
    )
