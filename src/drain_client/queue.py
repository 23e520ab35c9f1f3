from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

import psycopg
from loguru import logger
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from queue_drain.coordinator.types import QueueItem
from queue_drain.errors import QueueUnavailableError

from . import sql as q


class PgQueueClient:
    """Postgres-backed leased queue (``drain_queue`` table).

    A claim stamps the row with a fresh lease token and a ``leased_until``
    deadline; the row is invisible to other claimants until the deadline
    passes. Delete and release only act on the caller's own lease, so a
    worker whose lease already expired cannot acknowledge someone else's claim.
    """

    def __init__(self, pool: AsyncConnectionPool, *, lease_seconds: int = 300):
        if lease_seconds <= 0:
            raise ValueError("lease_seconds must be > 0")
        self.pool = pool
        self.lease_seconds = lease_seconds

    @asynccontextmanager
    async def _conn(self):
        try:
            async with self.pool.connection() as conn:
                yield conn
        except psycopg.Error as exc:
            raise QueueUnavailableError(f"{type(exc).__name__}: {exc}") from exc

    async def count(self, queue: str) -> int:
        async with self._conn() as conn:
            cur = await conn.execute(q.QUEUE_COUNT, {"queue": queue})
            row = await cur.fetchone()
            return int(row[0]) if row else 0

    async def claim(self, queue: str) -> Optional[QueueItem]:
        token = str(uuid.uuid4())
        async with self._conn() as conn:
            cur = await conn.execute(
                q.QUEUE_CLAIM,
                {"queue": queue, "token": token, "lease_seconds": float(self.lease_seconds)},
            )
            row = await cur.fetchone()
        if row is None:
            return None
        item_id, lease, payload = row
        return QueueItem(id=str(item_id), data=dict(payload or {}), lease=str(lease))

    async def delete(self, item: QueueItem) -> None:
        async with self._conn() as conn:
            cur = await conn.execute(q.QUEUE_DELETE, {"id": int(item.id), "token": item.lease})
            if cur.rowcount == 0:
                logger.warning(f"Queue item {item.id} was not deleted; its lease was lost")

    async def release(self, item: QueueItem) -> None:
        async with self._conn() as conn:
            await conn.execute(q.QUEUE_RELEASE, {"id": int(item.id), "token": item.lease})

    async def enqueue(self, queue: str, payload: Mapping[str, Any]) -> str:
        async with self._conn() as conn:
            cur = await conn.execute(
                q.QUEUE_ENQUEUE, {"queue": queue, "payload": Jsonb(dict(payload))}
            )
            row = await cur.fetchone()
            return str(row[0])
