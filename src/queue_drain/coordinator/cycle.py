from __future__ import annotations

import time
from typing import Optional

from loguru import logger

from ..errors import CoercionError, StorageError
from ..metrics.registry import (
    DRAIN_BATCH_SIZE,
    DRAIN_CYCLE_LATENCY,
    DRAIN_ITEMS_TOTAL,
    DRAIN_QUEUE_BACKLOG,
)
from .coercion import CoercionTable, default_coercions
from .notify import LoguruNotifier, NotifierBus
from .types import (
    CycleOutcome,
    DrainTarget,
    InsertFailed,
    InsertOk,
    InsertResult,
    Notifier,
    QueueClient,
    QueueItem,
    Severity,
    StorageClient,
)


class DrainCycle:
    """One claim -> persist -> acknowledge pass over a single queue/table pair.

    An item is deleted from the queue only after its insert is confirmed.
    Items whose insert fails are left claimed and are not retried here; the
    queue lease expires and a later cycle picks them up again.

    Storage errors, whether returned as InsertFailed or raised, count as a
    failed item. Queue errors propagate and abort the rest of the cycle. Items
    already deleted stay deleted.
    """

    def __init__(
        self,
        queue: QueueClient,
        storage: StorageClient,
        *,
        coercions: Optional[CoercionTable] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._queue = queue
        self._storage = storage
        self._coercions = coercions if coercions is not None else default_coercions()
        # notifier failures are logged and dropped, never abort the cycle
        self._notifier = NotifierBus(notifier or LoguruNotifier())

    async def run(self, target: DrainTarget, max_batch: int) -> CycleOutcome:
        t0 = time.perf_counter()
        queued = await self._queue.count(target.queue)
        DRAIN_QUEUE_BACKLOG.labels(target.queue).set(queued)
        DRAIN_BATCH_SIZE.labels(target.queue).set(max(0, max_batch))

        retrieved = saved = failed = 0
        for _ in range(max(0, max_batch)):
            item = await self._queue.claim(target.queue)
            if item is None:
                break
            retrieved += 1

            result = await self._persist(target, item)
            if isinstance(result, InsertOk):
                saved += 1
                await self._queue.delete(item)
            else:
                failed += 1
                await self._notifier.record(
                    Severity.ERROR,
                    f"Failed to save item {item.id} from {target.queue} into {target.table}; "
                    f"left in queue until its lease expires: {result.detail}",
                    {
                        "queue": target.queue,
                        "table": target.table,
                        "item_id": item.id,
                        "error": result.detail,
                    },
                )

        outcome = CycleOutcome(queued=queued, retrieved=retrieved, saved=saved, failed=failed)
        self._observe(target, outcome, time.perf_counter() - t0)
        return outcome

    async def _persist(self, target: DrainTarget, item: QueueItem) -> InsertResult:
        await self._notifier.record(
            Severity.DEBUG,
            f"Inserting item {item.id} from {target.queue} into {target.table}",
            {"queue": target.queue, "table": target.table, "item_id": item.id},
        )
        try:
            fields = self._coercions.apply(target.table, item.data)
        except CoercionError as exc:
            return InsertFailed(exc)
        try:
            return await self._storage.insert(target.table, fields)
        except StorageError as exc:
            return InsertFailed(exc)

    @staticmethod
    def _observe(target: DrainTarget, outcome: CycleOutcome, elapsed: float) -> None:
        DRAIN_CYCLE_LATENCY.labels(target.queue, target.table).observe(elapsed)
        for label, n in (
            ("retrieved", outcome.retrieved),
            ("saved", outcome.saved),
            ("failed", outcome.failed),
        ):
            if n:
                DRAIN_ITEMS_TOTAL.labels(target.queue, target.table, label).inc(n)
        logger.debug(f"Cycle {target} finished in {elapsed * 1000:.1f}ms: {outcome.as_dict()}")
