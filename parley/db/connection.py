"""Database connection management."""

import asyncio
import logging

import asyncpg
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

logger = logging.getLogger("parley.db")

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


class Database:
    """Owns one asyncpg pool. Constructed once and passed to its users."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self, max_retries: int = 5) -> asyncpg.Pool:
        """Create the connection pool with retry.

        Retries up to 5 times with backoff (2, 4, 8, 8, 8 seconds) to cover a
        database container that is still starting. The final failure propagates.
        """
        delays = [2, 4, 8, 8, 8]

        for attempt in range(max_retries):
            try:
                self._pool = await asyncpg.create_pool(
                    self.dsn, min_size=self.min_size, max_size=self.max_size
                )
                if attempt > 0:
                    logger.info(f"Database connected after {attempt + 1} attempts")
                return self._pool
            except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                if attempt < max_retries - 1:
                    delay = delays[min(attempt, len(delays) - 1)]
                    logger.warning(f"Database not ready (attempt {attempt + 1}/{max_retries}): {e}. Retrying in {delay}s...")
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Database connection failed after {max_retries} attempts: {e}")
                    raise

    async def close(self):
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def connection(self):
        """Get a database connection from the pool."""
        async with self.pool.acquire() as conn:
            yield conn

    async def apply_schema(self):
        """Run schema.sql. Safe to repeat (CREATE ... IF NOT EXISTS)."""
        schema = SCHEMA_PATH.read_text(encoding="utf-8")
        async with self.connection() as conn:
            await conn.execute(schema)
        logger.info("Database schema applied.")
