from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from storefront.core.exceptions import DatabaseError
from storefront.models.taxonomy_node import TaxonomyNodeBase, utc_now

logger = logging.getLogger(__name__)

NodeT = TypeVar("NodeT", bound=TaxonomyNodeBase)

IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


@dataclass
class NodePage(Generic[NodeT]):
    items: list[NodeT]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

class NodeStore(Generic[NodeT]):
    """Flat persistence for the nodes of one taxonomy kind.

    The store never commits; the caller owns the transaction. Reads refresh
    rows already held in the session so checks never see a stale parent.
    """

    def __init__(self, session: AsyncSession, model: type[NodeT]) -> None:
        self.session = session
        self.model = model

    @asynccontextmanager
    async def _db_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError:
            # Unique violations are a domain conflict; the service maps them.
            raise
        except SQLAlchemyError as exc:
            logger.error(
                "%s failed on %s", operation, self.model.__tablename__, exc_info=True
            )
            raise DatabaseError(operation, str(exc)) from exc

    def _select(self):
        return select(self.model).execution_options(populate_existing=True)

    def _sibling_order(self):
        # Case-insensitive like the tree builder; accents are only folded there.
        return (
            self.model.sort_order.asc(),
            func.lower(self.model.name).asc(),
            self.model.name.asc(),
        )

    async def find_by_id(self, node_id: UUID) -> NodeT | None:
        async with self._db_errors("find_by_id"):
            result = await self.session.execute(self._select().where(self.model.id == node_id))
            return result.scalar_one_or_none()

    async def find_by_slug(self, slug: str) -> NodeT | None:
        async with self._db_errors("find_by_slug"):
            result = await self.session.execute(
                self._select().where(func.lower(self.model.slug) == slug.strip().lower())
            )
            return result.scalar_one_or_none()

    async def find_children(self, parent_id: UUID) -> list[NodeT]:
        async with self._db_errors("find_children"):
            result = await self.session.execute(
                self._select()
                .where(self.model.parent_id == parent_id)
                .order_by(*self._sibling_order())
            )
            return list(result.scalars().all())

    async def find_all(self, active_only: bool = False) -> list[NodeT]:
        stmt = self._select()
        if active_only:
            stmt = stmt.where(self.model.is_active.is_(True))
        stmt = stmt.order_by(*self._sibling_order())
        async with self._db_errors("find_all"):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def index_by_id(self) -> dict[UUID, NodeT]:
        return {node.id: node for node in await self.find_all()}

    async def find_with_filters(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        parent_id: UUID | None = None,
        roots_only: bool = False,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> NodePage[NodeT]:
        conditions = []
        if roots_only:
            conditions.append(self.model.parent_id.is_(None))
        elif parent_id is not None:
            conditions.append(self.model.parent_id == parent_id)
        if is_active is not None:
            conditions.append(self.model.is_active.is_(is_active))
        if search:
            conditions.append(self.model.name.ilike(f"%{search.strip()}%"))

        stmt = (
            self._select()
            .where(*conditions)
            .order_by(*self._sibling_order())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(self.model).where(*conditions)
        async with self._db_errors("find_with_filters"):
            items = list((await self.session.execute(stmt)).scalars().all())
            total = (await self.session.execute(count_stmt)).scalar_one()
        return NodePage(items=items, total=int(total), page=page, limit=limit)

    async def search_by_name(self, query: str, limit: int = 10) -> list[NodeT]:
        async with self._db_errors("search_by_name"):
            result = await self.session.execute(
                self._select()
                .where(self.model.name.ilike(f"%{query.strip()}%"))
                .order_by(*self._sibling_order())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def slug_exists(self, slug: str, exclude_id: UUID | None = None) -> bool:
        stmt = select(self.model.id).where(func.lower(self.model.slug) == slug.strip().lower())
        if exclude_id:
            stmt = stmt.where(self.model.id != exclude_id)
        async with self._db_errors("slug_exists"):
            result = await self.session.execute(stmt.limit(1))
            return result.first() is not None

    async def has_children(self, node_id: UUID) -> bool:
        async with self._db_errors("has_children"):
            result = await self.session.execute(
                select(self.model.id).where(self.model.parent_id == node_id).limit(1)
            )
            return result.first() is not None

    async def max_sort_order(self, parent_id: UUID | None) -> int | None:
        if parent_id is None:
            condition = self.model.parent_id.is_(None)
        else:
            condition = self.model.parent_id == parent_id
        async with self._db_errors("max_sort_order"):
            result = await self.session.execute(
                select(func.max(self.model.sort_order)).where(condition)
            )
            return result.scalar_one_or_none()

    async def create(self, data: Mapping[str, Any]) -> NodeT:
        now = utc_now()
        node = self.model(**{**data, "created_at": now, "updated_at": now})
        async with self._db_errors("create"):
            self.session.add(node)
            await self.session.flush()
        return node

    async def update_by_id(self, node_id: UUID, patch: Mapping[str, Any]) -> NodeT | None:
        node = await self.find_by_id(node_id)
        if node is None:
            return None
        for key, value in patch.items():
            if key in IMMUTABLE_FIELDS:
                continue
            setattr(node, key, value)
        node.updated_at = utc_now()
        async with self._db_errors("update_by_id"):
            self.session.add(node)
            await self.session.flush()
        return node

    async def delete_by_id(self, node_id: UUID) -> None:
        async with self._db_errors("delete_by_id"):
            await self.session.execute(delete(self.model).where(self.model.id == node_id))

    async def reparent_children(self, old_parent_id: UUID, new_parent_id: UUID | None) -> int:
        """Move every direct child of ``old_parent_id`` in a single statement."""
        async with self._db_errors("reparent_children"):
            result = await self.session.execute(
                update(self.model)
                .where(self.model.parent_id == old_parent_id)
                .values(parent_id=new_parent_id, updated_at=utc_now())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    async def bulk_update_order(self, updates: Iterable[tuple[UUID, int]]) -> int:
        now = utc_now()
        touched = 0
        async with self._db_errors("bulk_update_order"):
            for node_id, sort_order in updates:
                result = await self.session.execute(
                    update(self.model)
                    .where(self.model.id == node_id)
                    .values(sort_order=sort_order, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                touched += result.rowcount or 0
        return touched
