from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from storefront.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class ContentReferences(Protocol):
    """Content that can point at taxonomy nodes (products, blog posts)."""

    async def remove_category_references(self, node_id: UUID) -> int: ...


class LinkTableContentReferences:
    """Detaches a node from content through a ``(content, category_id)`` link table.

    Runs inside the caller's transaction. Deleting rows that are already gone
    is a no-op, so repeated calls are safe.
    """

    def __init__(self, session: AsyncSession, link_model: type[SQLModel]) -> None:
        self.session = session
        self.link_model = link_model

    async def remove_category_references(self, node_id: UUID) -> int:
        try:
            result = await self.session.execute(
                delete(self.link_model).where(self.link_model.category_id == node_id)
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Removing references to %s from %s failed",
                node_id,
                self.link_model.__tablename__,
                exc_info=True,
            )
            raise DatabaseError("remove_category_references", str(exc)) from exc
        return result.rowcount or 0
