from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable


@dataclass
class QueueItem:
    """A claimed queue entry.

    Attributes:
        id: Backend-assigned handle for the entry
        data: Record payload (column name -> value)
        lease: Claim token, if the backend issues one per claim
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    lease: Optional[str] = None


@dataclass(frozen=True)
class DrainTarget:
    """Pairing of a source queue and a destination table."""

    queue: str
    table: str

    @classmethod
    def parse(cls, spec: str) -> "DrainTarget":
        """Parse ``"queue:table"``; a bare ``"name"`` uses the same name for both."""
        queue, sep, table = spec.partition(":")
        queue, table = queue.strip(), table.strip()
        if not queue or (sep and not table):
            raise ValueError(f"Invalid drain target: {spec!r} (expected 'queue:table')")
        return cls(queue=queue, table=table or queue)

    def __str__(self) -> str:
        return f"{self.queue}->{self.table}"


@dataclass(frozen=True)
class CycleOutcome:
    """Counts for one drain cycle.

    ``retrieved == saved + failed`` always holds. ``queued`` is a backlog
    snapshot taken before claiming and is advisory only.
    """

    queued: int = 0
    retrieved: int = 0
    saved: int = 0
    failed: int = 0

    def __post_init__(self) -> None:
        if self.retrieved != self.saved + self.failed:
            raise ValueError(
                f"retrieved ({self.retrieved}) != saved ({self.saved}) + failed ({self.failed})"
            )

    def as_dict(self) -> dict[str, int]:
        return {
            "queued": self.queued,
            "retrieved": self.retrieved,
            "saved": self.saved,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class BatchSizeDecision:
    configured: int
    load: float
    effective: int

    @property
    def scaled(self) -> bool:
        return self.effective != self.configured


@dataclass(frozen=True)
class InsertOk:
    record_id: Any = None


@dataclass(frozen=True)
class InsertFailed:
    error: Exception

    @property
    def detail(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


InsertResult = Union[InsertOk, InsertFailed]


class Severity(str, Enum):
    """Notification severity levels (values match loguru level names)."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


# --- collaborator protocols ---


@runtime_checkable
class QueueClient(Protocol):
    async def count(self, queue: str) -> int: ...

    async def claim(self, queue: str) -> Optional[QueueItem]:
        """Lease one visible item, or return None when nothing is claimable."""
        ...

    async def delete(self, item: QueueItem) -> None: ...

    async def release(self, item: QueueItem) -> None:
        """Return a claimed item to visibility before its lease expires."""
        ...


@runtime_checkable
class StorageClient(Protocol):
    async def insert(self, table: str, fields: Mapping[str, Any]) -> InsertResult:
        """Insert one record. Failures are returned as InsertFailed, never raised."""
        ...


@runtime_checkable
class ConfigProvider(Protocol):
    async def get_int(self, key: str, default: int) -> int: ...


@runtime_checkable
class LoadProbe(Protocol):
    def current_load1(self) -> float: ...


@runtime_checkable
class ShuntGuard(Protocol):
    async def is_enabled(self, name: str) -> bool: ...


@runtime_checkable
class Notifier(Protocol):
    async def record(
        self, severity: Severity, message: str, context: Mapping[str, Any]
    ) -> None: ...
