"""
Administrative settings and shunts stored in Postgres.

Both tables are edited by operators; these readers never write to them.
"""

from __future__ import annotations

import psycopg
from loguru import logger
from psycopg_pool import AsyncConnectionPool

from queue_drain.errors import ConfigUnavailableError

from . import sql as q


class PgConfigProvider:
    """Integer settings from ``drain_settings(key, value)``."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def get_int(self, key: str, default: int) -> int:
        try:
            async with self.pool.connection() as conn:
                cur = await conn.execute(q.SETTING_GET, {"key": key})
                row = await cur.fetchone()
        except psycopg.Error as exc:
            raise ConfigUnavailableError(f"{type(exc).__name__}: {exc}") from exc
        if row is None or row[0] is None:
            return default
        try:
            return int(str(row[0]).strip())
        except ValueError:
            logger.warning(f"Setting {key}={row[0]!r} is not an integer; using default {default}")
            return default


class PgShuntGuard:
    """Shunts from ``drain_shunts(name, enabled)``; unknown names are not tripped.

    If the table cannot be read the guard reports the shunt as enabled, so an
    unreachable admin database stops the run instead of draining unchecked.
    """

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def is_enabled(self, name: str) -> bool:
        try:
            async with self.pool.connection() as conn:
                cur = await conn.execute(q.SHUNT_GET, {"name": name})
                row = await cur.fetchone()
        except psycopg.Error as exc:
            logger.error(
                f"Cannot read shunt '{name}' ({type(exc).__name__}: {exc}); treating as enabled"
            )
            return True
        return bool(row[0]) if row else False


def open_pool(
    dsn: str, *, pool_max: int = 4, app_name: str = "queue_drain"
) -> AsyncConnectionPool:
    """Create an AsyncConnectionPool; call ``await pool.open()`` before use."""
    return AsyncConnectionPool(
        conninfo=dsn,
        max_size=pool_max,
        open=False,
        kwargs={"autocommit": False, "application_name": app_name},
    )
