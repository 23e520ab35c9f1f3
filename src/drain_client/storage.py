from __future__ import annotations

from typing import Any, Mapping, Optional

import psycopg
from loguru import logger
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from queue_drain.coordinator.types import InsertFailed, InsertOk, InsertResult
from queue_drain.errors import StorageError, map_db_error

from .sql import insert_statement


def _adapt(value: Any) -> Any:
    # nested payload structures go to json/jsonb columns
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


class PgStorageClient:
    """Inserts one record per call; each insert commits on its own.

    Database errors are mapped onto the StorageError taxonomy and returned as
    InsertFailed so callers never have to catch them.
    """

    def __init__(self, pool: AsyncConnectionPool, *, returning: Optional[str] = "id"):
        self.pool = pool
        self.returning = returning

    async def insert(self, table: str, fields: Mapping[str, Any]) -> InsertResult:
        if not fields:
            return InsertFailed(StorageError(f"empty record for table {table!r}"))
        cols = list(fields)
        stmt = insert_statement(table, cols, returning=self.returning)
        params = {c: _adapt(v) for c, v in fields.items()}
        try:
            async with self.pool.connection() as conn:
                cur = await conn.execute(stmt, params)
                if self.returning:
                    row = await cur.fetchone()
                    return InsertOk(row[0] if row else None)
                return InsertOk(cur.rowcount)
        except psycopg.Error as exc:
            err = map_db_error(exc)
            logger.debug(f"Insert into {table} failed: {type(err).__name__}: {err}")
            return InsertFailed(err)
