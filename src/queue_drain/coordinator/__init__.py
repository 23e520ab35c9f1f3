"""Queue drain coordinator

Claim -> persist -> acknowledge pipeline with:
- LoadSampler (batch size scaled down under host load)
- DrainCycle (delete only after a confirmed insert; lease-expiry retries)
- DrainCoordinator (sequential targets, shunt kill-switch, severity reporting)
- Declarative per-table field coercion
- Notifier fan-out with loguru
- Prometheus metrics
- Environment-based settings
"""

from .types import (
    QueueItem,
    DrainTarget,
    CycleOutcome,
    BatchSizeDecision,
    InsertOk,
    InsertFailed,
    InsertResult,
    Severity,
    QueueClient,
    StorageClient,
    ConfigProvider,
    LoadProbe,
    ShuntGuard,
    Notifier,
)
from .sampler import LoadSampler, PsutilLoadProbe, FixedLoadProbe
from .coercion import CoercionTable, as_int, default_coercions
from .cycle import DrainCycle
from .drain_coordinator import DrainCoordinator, RunReport
from .notify import LoguruNotifier, NotifierBus, classify_outcome, describe_outcome
from .settings import (
    DrainSettings,
    get_settings,
    SettingsConfigProvider,
    SettingsShuntGuard,
)

__all__ = [
    # types
    "QueueItem",
    "DrainTarget",
    "CycleOutcome",
    "BatchSizeDecision",
    "InsertOk",
    "InsertFailed",
    "InsertResult",
    "Severity",
    # collaborator protocols
    "QueueClient",
    "StorageClient",
    "ConfigProvider",
    "LoadProbe",
    "ShuntGuard",
    "Notifier",
    # policies
    "LoadSampler",
    "PsutilLoadProbe",
    "FixedLoadProbe",
    "CoercionTable",
    "as_int",
    "default_coercions",
    # runtime
    "DrainCycle",
    "DrainCoordinator",
    "RunReport",
    "DrainSettings",
    "get_settings",
    "SettingsConfigProvider",
    "SettingsShuntGuard",
    # notifications
    "LoguruNotifier",
    "NotifierBus",
    "classify_outcome",
    "describe_outcome",
]
