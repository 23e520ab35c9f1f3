"""
Fake collaborators for drain cycle and coordinator tests.
"""

import itertools
from typing import Any, Mapping, Optional

import pytest

from queue_drain.coordinator import InsertFailed, InsertOk, QueueItem, Severity
from queue_drain.errors import ConstraintViolation, QueueUnavailableError


class FakeQueue:
    """In-memory leased queue that records every call.

    Claimed items stay invisible until deleted or until expire_leases().
    """

    def __init__(self, events: Optional[list] = None):
        self._ids = itertools.count(1)
        self.items: dict[str, dict[str, QueueItem]] = {}
        self.leased: set[str] = set()
        self.calls: list[tuple] = []
        self.events = events if events is not None else []
        self.fail_on: set[str] = set()

    def put(self, queue: str, data: dict) -> str:
        item_id = str(next(self._ids))
        self.items.setdefault(queue, {})[item_id] = QueueItem(id=item_id, data=data)
        return item_id

    def fill(self, queue: str, n: int) -> None:
        for i in range(1, n + 1):
            self.put(queue, {"n": i})

    def pending(self, queue: str) -> int:
        return len(self.items.get(queue, {}))

    def expire_leases(self) -> None:
        self.leased.clear()

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise QueueUnavailableError(f"{op}: connection refused")

    async def count(self, queue: str) -> int:
        self.calls.append(("count", queue))
        self._check("count")
        return self.pending(queue)

    async def claim(self, queue: str) -> Optional[QueueItem]:
        self.calls.append(("claim", queue))
        self._check("claim")
        for item_id, item in self.items.get(queue, {}).items():
            if item_id not in self.leased:
                self.leased.add(item_id)
                return QueueItem(id=item.id, data=dict(item.data), lease=f"lease-{item_id}")
        return None

    async def delete(self, item: QueueItem) -> None:
        self.calls.append(("delete", item.id))
        self._check("delete")
        self.events.append(("delete", item.data.get("n")))
        for items in self.items.values():
            items.pop(item.id, None)
        self.leased.discard(item.id)

    async def release(self, item: QueueItem) -> None:
        self.calls.append(("release", item.id))
        self.leased.discard(item.id)


class FakeStorage:
    """Records inserts; fails when ``n`` is in fail_values or on every Nth attempt.

    Values in raise_values make insert raise instead of returning InsertFailed.
    """

    def __init__(
        self,
        events: Optional[list] = None,
        *,
        fail_values=(),
        fail_every: int = 0,
        raise_values=(),
    ):
        self.rows: list[tuple[str, dict]] = []
        self.calls: list[tuple[str, dict]] = []
        self.events = events if events is not None else []
        self.fail_values = set(fail_values)
        self.fail_every = fail_every
        self.raise_values = set(raise_values)

    async def insert(self, table: str, fields: Mapping[str, Any]):
        self.calls.append((table, dict(fields)))
        n = fields.get("n")
        attempt = len(self.calls)
        if n in self.raise_values:
            self.events.append(("insert_raised", n))
            raise ConstraintViolation(f"duplicate key n={n}")
        if n in self.fail_values or (self.fail_every and attempt % self.fail_every == 0):
            self.events.append(("insert_failed", n))
            return InsertFailed(ConstraintViolation(f"duplicate key n={n}"))
        self.rows.append((table, dict(fields)))
        self.events.append(("insert_ok", n))
        return InsertOk(len(self.rows))


class FakeShunt:
    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self.checked: list[str] = []

    async def is_enabled(self, name: str) -> bool:
        self.checked.append(name)
        return self.enabled


class StaticConfig:
    def __init__(self, values: Optional[dict] = None):
        self.values = values or {}
        self.requested: list[tuple[str, int]] = []

    async def get_int(self, key: str, default: int) -> int:
        self.requested.append((key, default))
        return self.values.get(key, default)


class SequenceProbe:
    """LoadProbe returning successive values (last one repeats)."""

    def __init__(self, *values: float):
        self._values = list(values) or [0.0]
        self.samples = 0

    def current_load1(self) -> float:
        value = self._values[min(self.samples, len(self._values) - 1)]
        self.samples += 1
        return value


class RecordingNotifier:
    def __init__(self):
        self.records: list[tuple[Severity, str, dict]] = []

    async def record(self, severity, message, context) -> None:
        self.records.append((Severity(severity), message, dict(context)))

    def at(self, severity: Severity) -> list[tuple[Severity, str, dict]]:
        return [r for r in self.records if r[0] == severity]


class BrokenNotifier:
    """Notifier whose sink is down; every record raises."""

    def __init__(self):
        self.attempts = 0

    async def record(self, severity, message, context) -> None:
        self.attempts += 1
        raise RuntimeError("webhook down")


@pytest.fixture
def events():
    return []


@pytest.fixture
def queue(events):
    return FakeQueue(events)


@pytest.fixture
def storage(events):
    return FakeStorage(events)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def broken_notifier():
    return BrokenNotifier()


@pytest.fixture
def make_storage(events):
    def _make(**kwargs) -> FakeStorage:
        return FakeStorage(events, **kwargs)

    return _make


@pytest.fixture
def make_shunt():
    return FakeShunt


@pytest.fixture
def make_config():
    return StaticConfig


@pytest.fixture
def make_probe():
    return SequenceProbe
