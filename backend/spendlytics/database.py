import logging
from collections.abc import AsyncIterator

from fastapi import HTTPException
from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .config import settings

logger = logging.getLogger(__name__)

# Shared async pool used by FastAPI dependencies.
pool: AsyncConnectionPool | None = None


async def init_db_pool() -> None:
    global pool

    # Keep app booting in non-DB contexts; insight endpoints fail explicitly if used.
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; goal insight endpoints will return 500")
        return

    pool = AsyncConnectionPool(
        conninfo=settings.database_url,
        open=False,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        kwargs={"autocommit": True, "row_factory": dict_row},
    )
    await pool.open()
    logger.info("Database pool opened (max_size=%s)", settings.db_pool_max_size)


async def close_db_pool() -> None:
    global pool

    if pool is None:
        return

    await pool.close()
    pool = None
    logger.info("Database pool closed")


async def get_db_connection() -> AsyncIterator[AsyncConnection]:
    # Goal and snapshot reads all go through one pooled connection per request.
    if pool is None:
        raise HTTPException(status_code=500, detail="DATABASE_URL is not configured")

    async with pool.connection() as connection:
        yield connection
