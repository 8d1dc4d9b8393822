import asyncio
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from storefront.core.exceptions import StructuralConflictError
from storefront.schemas.taxonomy import CategoryCreateRequest, CategoryUpdateRequest
from storefront.services.taxonomy import PRODUCT_CATEGORIES, TaxonomyService


@pytest.fixture
async def file_session_maker(tmp_path: Path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'taxonomy.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def move(maker: async_sessionmaker[AsyncSession], node_id, parent_id):
    async with maker() as session:
        service = TaxonomyService(session, PRODUCT_CATEGORIES)
        return await service.update(node_id, CategoryUpdateRequest(parent_id=parent_id))


@pytest.mark.asyncio
async def test_crossing_moves_cannot_both_succeed(file_session_maker) -> None:
    async with file_session_maker() as session:
        service = TaxonomyService(session, PRODUCT_CATEGORIES)
        a = await service.create(CategoryCreateRequest(name="A"))
        b = await service.create(CategoryCreateRequest(name="B"))

    results = await asyncio.gather(
        move(file_session_maker, a.id, b.id),
        move(file_session_maker, b.id, a.id),
        return_exceptions=True,
    )

    failures = [result for result in results if isinstance(result, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], StructuralConflictError)

    async with file_session_maker() as session:
        nodes = await TaxonomyService(session, PRODUCT_CATEGORIES).store.find_all()
    parents = {node.id: node.parent_id for node in nodes}
    assert list(parents.values()).count(None) == 1
