from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaxonomyNodeBase(SQLModel):
    """Columns shared by every taxonomy kind.

    Concrete tables add ``parent_id`` themselves because the self-referential
    foreign key has to name their own table.
    """

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    name: str = Field(nullable=False, max_length=100)
    slug: str = Field(nullable=False, max_length=120, unique=True, index=True)
    description: str = Field(default="", nullable=False, max_length=15000)
    image: str | None = Field(default=None, max_length=2048)
    sort_order: int = Field(default=0, nullable=False)
    is_active: bool = Field(default=True, nullable=False, index=True)
    seo_title: str = Field(default="", nullable=False, max_length=70)
    seo_description: str = Field(default="", nullable=False, max_length=200)
    seo_og_image: str | None = Field(default=None, max_length=2048)
    seo_noindex: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False
    )
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False
    )
