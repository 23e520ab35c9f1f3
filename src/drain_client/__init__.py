"""
Postgres backends for queue draining.

Usage:
    from drain_client import open_pool, PgQueueClient, PgStorageClient

    pool = open_pool("postgresql://...")
    await pool.open()
    queue = PgQueueClient(pool, lease_seconds=300)
    storage = PgStorageClient(pool)
"""

from .queue import PgQueueClient
from .storage import PgStorageClient
from .admin import PgConfigProvider, PgShuntGuard, open_pool

__all__ = [
    "PgQueueClient",
    "PgStorageClient",
    "PgConfigProvider",
    "PgShuntGuard",
    "open_pool",
]
