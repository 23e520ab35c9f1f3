from __future__ import annotations

from collections.abc import Mapping
from typing import Iterable, Iterator, Optional

from loguru import logger

from ..metrics.registry import DRAIN_RUNS_TOTAL
from .cycle import DrainCycle
from .notify import LoguruNotifier, NotifierBus, classify_outcome, describe_outcome
from .sampler import LoadSampler
from .types import (
    ConfigProvider,
    CycleOutcome,
    DrainTarget,
    LoadProbe,
    Notifier,
    ShuntGuard,
)

DEFAULT_BATCH_SIZE_KEY = "drain.batch_size"
DEFAULT_BATCH_SIZE = 100


class RunReport(Mapping):
    """Ordered, read-only mapping DrainTarget -> CycleOutcome for one run."""

    def __init__(
        self,
        outcomes: Optional[dict[DrainTarget, CycleOutcome]] = None,
        *,
        skipped: bool = False,
    ):
        self._outcomes = dict(outcomes or {})
        self.skipped = skipped

    def __getitem__(self, target: DrainTarget) -> CycleOutcome:
        return self._outcomes[target]

    def __iter__(self) -> Iterator[DrainTarget]:
        return iter(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    @property
    def total_saved(self) -> int:
        return sum(o.saved for o in self._outcomes.values())

    @property
    def total_failed(self) -> int:
        return sum(o.failed for o in self._outcomes.values())

    def as_dict(self) -> dict:
        return {
            "skipped": self.skipped,
            "targets": {str(t): o.as_dict() for t, o in self._outcomes.items()},
        }


class DrainCoordinator:
    """Runs drain cycles over (queue, table) targets, one after another.

    The shunt named ``name`` is consulted first; when it is enabled the run is
    skipped without touching the queue or storage. A target whose cycle reports
    failed items does not stop the next target. A queue fault propagates and
    leaves the remaining targets for the next run.

    Example:
        coord = DrainCoordinator(
            cycle=DrainCycle(queue, storage),
            config=SettingsConfigProvider(settings),
            probe=PsutilLoadProbe(),
            shunt=SettingsShuntGuard(settings),
        )
        report = await coord.run_all([DrainTarget("donations", "contributions")])
    """

    def __init__(
        self,
        *,
        cycle: DrainCycle,
        config: ConfigProvider,
        probe: LoadProbe,
        shunt: ShuntGuard,
        sampler: Optional[LoadSampler] = None,
        notifier: Optional[Notifier] = None,
        name: str = "queue_drain",
        batch_size_key: str = DEFAULT_BATCH_SIZE_KEY,
        default_batch_size: int = DEFAULT_BATCH_SIZE,
        server_name: str = "",
        worker_name: str = "",
    ):
        self._cycle = cycle
        self._config = config
        self._probe = probe
        self._shunt = shunt
        self._sampler = sampler or LoadSampler()
        self._notifier = NotifierBus(notifier or LoguruNotifier())
        self._name = name
        self._batch_key = batch_size_key
        self._default_batch = default_batch_size
        self._identity = {"server": server_name, "worker": worker_name}

    @property
    def name(self) -> str:
        return self._name

    async def run_all(self, targets: Iterable[DrainTarget]) -> RunReport:
        if await self._shunt.is_enabled(self._name):
            logger.warning(f"Shunt '{self._name}' is enabled; skipping drain run")
            DRAIN_RUNS_TOTAL.labels(self._name, "skipped").inc()
            return RunReport(skipped=True)

        outcomes: dict[DrainTarget, CycleOutcome] = {}
        try:
            for target in targets:
                outcomes[target] = await self._drain_one(target)
        except Exception:
            DRAIN_RUNS_TOTAL.labels(self._name, "aborted").inc()
            logger.error(
                f"Drain run '{self._name}' aborted after {len(outcomes)} target(s); "
                f"remaining targets deferred to the next run"
            )
            raise

        DRAIN_RUNS_TOTAL.labels(self._name, "completed").inc()
        return RunReport(outcomes)

    async def _drain_one(self, target: DrainTarget) -> CycleOutcome:
        base = await self._config.get_int(self._batch_key, self._default_batch)
        load = self._probe.current_load1()
        decision = self._sampler.decide(base, load)

        outcome = await self._cycle.run(target, decision.effective)

        await self._notifier.record(
            classify_outcome(outcome),
            describe_outcome(target, outcome),
            {
                **self._identity,
                "coordinator": self._name,
                "queue": target.queue,
                "table": target.table,
                "batch_size": decision.effective,
                "load": load,
                **outcome.as_dict(),
            },
        )
        return outcome
