"""
Demo script for DrainCoordinator.

Drains two in-memory queues into an in-memory table store; one record carries
a bad signup value and stays in its queue.
"""

import asyncio
import itertools
from typing import Any, Mapping, Optional

from loguru import logger

from queue_drain.coordinator import (
    DrainCoordinator,
    DrainCycle,
    DrainTarget,
    FixedLoadProbe,
    InsertOk,
    InsertResult,
    QueueItem,
)


class MemoryQueue:
    """Queue without lease expiry: claimed items stay invisible until deleted."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._items: dict[str, dict[str, QueueItem]] = {}
        self._claimed: set[str] = set()

    def put(self, queue: str, data: dict) -> None:
        item_id = str(next(self._ids))
        self._items.setdefault(queue, {})[item_id] = QueueItem(id=item_id, data=data)

    async def count(self, queue: str) -> int:
        return len(self._items.get(queue, {}))

    async def claim(self, queue: str) -> Optional[QueueItem]:
        for item_id, item in self._items.get(queue, {}).items():
            if item_id not in self._claimed:
                self._claimed.add(item_id)
                return item
        return None

    async def delete(self, item: QueueItem) -> None:
        for items in self._items.values():
            items.pop(item.id, None)
        self._claimed.discard(item.id)

    async def release(self, item: QueueItem) -> None:
        self._claimed.discard(item.id)


class MemoryStore:
    def __init__(self):
        self.tables: dict[str, list[dict]] = {}

    async def insert(self, table: str, fields: Mapping[str, Any]) -> InsertResult:
        rows = self.tables.setdefault(table, [])
        rows.append(dict(fields))
        return InsertOk(len(rows))


class AlwaysOff:
    async def is_enabled(self, name: str) -> bool:
        return False


class StaticConfig:
    async def get_int(self, key: str, default: int) -> int:
        return 10


async def main():
    queue = MemoryQueue()
    for i in range(12):
        queue.put("donations", {"contact": f"c{i}", "amount": 5 * i, "signup": str(i % 2)})
    queue.put("donations", {"contact": "bad", "amount": 1, "signup": "yes"})
    for i in range(3):
        queue.put("recurring", {"contact": f"r{i}", "amount": 20})

    store = MemoryStore()
    coord = DrainCoordinator(
        cycle=DrainCycle(queue, store),
        config=StaticConfig(),
        probe=FixedLoadProbe(0.5),
        shunt=AlwaysOff(),
        server_name="demo-host",
        worker_name="demo",
    )

    targets = [
        DrainTarget("donations", "contributions"),
        DrainTarget("recurring", "contributions_recur"),
        DrainTarget("refunds", "refunds"),
    ]
    for run in range(2):
        report = await coord.run_all(targets)
        logger.info(f"Run {run + 1}: {report.as_dict()}")

    for table, rows in store.tables.items():
        logger.info(f"{table}: {len(rows)} row(s)")
    logger.info(f"Left in donations queue: {await queue.count('donations')}")


if __name__ == "__main__":
    asyncio.run(main())
