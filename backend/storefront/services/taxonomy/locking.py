from __future__ import annotations

import asyncio
import logging
import weakref
import zlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# asyncio locks belong to the loop that first waits on them, so keep one
# registry per running loop.
_LOCKS: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]] = (
    weakref.WeakKeyDictionary()
)


def _lock_for(kind_key: str) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    locks = _LOCKS.setdefault(loop, {})
    lock = locks.get(kind_key)
    if lock is None:
        lock = locks[kind_key] = asyncio.Lock()
    return lock


def advisory_lock_key(kind_key: str) -> int:
    # pg_advisory_xact_lock takes a signed bigint.
    return zlib.crc32(f"taxonomy:{kind_key}".encode("utf-8")) - 2**31


@asynccontextmanager
async def structural_lock(session: AsyncSession, kind_key: str) -> AsyncIterator[None]:
    """Serialize parent-changing writes within one taxonomy kind.

    The in-process lock covers a single worker; on PostgreSQL a transaction
    scoped advisory lock covers the other workers too. Hold it across the
    read, the check and the commit.
    """
    async with _lock_for(kind_key):
        bind = session.get_bind()
        if bind.dialect.name == "postgresql":
            await session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": advisory_lock_key(kind_key)},
            )
            logger.debug("Advisory lock taken for %s", kind_key)
        yield
