from __future__ import annotations

import math

import psutil
from loguru import logger

from .types import BatchSizeDecision

DEFAULT_LOAD_THRESHOLD = 8.0


class LoadSampler:
    """Shrinks the configured batch size when the host is overloaded.

    Above ``load_threshold`` (treated as the number of cores available) the
    batch is divided by the 1-minute load average; otherwise it is used as-is.
    A result of 0 means "claim nothing this cycle".
    """

    def __init__(self, load_threshold: float = DEFAULT_LOAD_THRESHOLD):
        if load_threshold < 0:
            raise ValueError("load_threshold must be >= 0")
        self._threshold = float(load_threshold)

    @property
    def load_threshold(self) -> float:
        return self._threshold

    def compute_batch_size(self, configured_base: int, load1: float) -> int:
        base = max(0, int(configured_base))
        if load1 > self._threshold:
            return max(0, math.floor(base / load1))
        return base

    def decide(self, configured_base: int, load1: float) -> BatchSizeDecision:
        effective = self.compute_batch_size(configured_base, load1)
        decision = BatchSizeDecision(configured=configured_base, load=load1, effective=effective)
        if decision.scaled:
            logger.info(
                f"Load {load1:.2f} above {self._threshold:.2f}; "
                f"batch size reduced {configured_base} -> {effective}"
            )
        return decision


class PsutilLoadProbe:
    """1-minute load average of the host."""

    def current_load1(self) -> float:
        return float(psutil.getloadavg()[0])


class FixedLoadProbe:
    """Constant load value (tests and manual overrides)."""

    def __init__(self, value: float = 0.0):
        self.value = float(value)

    def current_load1(self) -> float:
        return self.value
