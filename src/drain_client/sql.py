from __future__ import annotations

from typing import Sequence

from psycopg import sql as psql

QUEUE_TABLE = "drain_queue"
SETTINGS_TABLE = "drain_settings"
SHUNTS_TABLE = "drain_shunts"

# Every row of the queue, leased or not
QUEUE_COUNT = f"SELECT count(*) FROM {QUEUE_TABLE} WHERE queue_name = %(queue)s"

# Lease the oldest visible row; SKIP LOCKED keeps concurrent claimants apart
QUEUE_CLAIM = f"""
    UPDATE {QUEUE_TABLE}
       SET lease_token = %(token)s,
           leased_until = NOW() + make_interval(secs => %(lease_seconds)s)
     WHERE id = (
            SELECT id FROM {QUEUE_TABLE}
             WHERE queue_name = %(queue)s
               AND (leased_until IS NULL OR leased_until < NOW())
             ORDER BY id
             FOR UPDATE SKIP LOCKED
             LIMIT 1
           )
 RETURNING id, lease_token, payload
"""

QUEUE_DELETE = f"DELETE FROM {QUEUE_TABLE} WHERE id = %(id)s AND lease_token = %(token)s"

QUEUE_RELEASE = f"""
    UPDATE {QUEUE_TABLE}
       SET lease_token = NULL, leased_until = NULL
     WHERE id = %(id)s AND lease_token = %(token)s
"""

QUEUE_ENQUEUE = (
    f"INSERT INTO {QUEUE_TABLE} (queue_name, payload) VALUES (%(queue)s, %(payload)s) RETURNING id"
)

SETTING_GET = f"SELECT value FROM {SETTINGS_TABLE} WHERE key = %(key)s"

SHUNT_GET = f"SELECT enabled FROM {SHUNTS_TABLE} WHERE name = %(name)s"


def insert_statement(
    table: str, cols: Sequence[str], returning: str | None = "id"
) -> psql.Composed:
    """INSERT INTO table (cols) VALUES (...) with named parameters (%(name)s)."""
    stmt = psql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
        psql.Identifier(table),
        psql.SQL(", ").join(psql.Identifier(c) for c in cols),
        psql.SQL(", ").join(psql.Placeholder(c) for c in cols),
    )
    if returning:
        stmt = stmt + psql.SQL(" RETURNING {}").format(psql.Identifier(returning))
    return stmt
