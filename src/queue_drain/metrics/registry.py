"""
Prometheus metrics for drain cycles and coordinator runs.
Registered in the global REGISTRY on import.
"""

from prometheus_client import Counter, Gauge, Histogram

# --- Drain cycle metrics ---

DRAIN_ITEMS_TOTAL = Counter(
    "drain_items_total",
    "Queue items processed by drain cycles",
    ["queue", "table", "outcome"],  # outcome: retrieved | saved | failed
)

DRAIN_CYCLE_LATENCY = Histogram(
    "drain_cycle_latency_seconds",
    "Wall time of one drain cycle",
    ["queue", "table"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60, 120],
)

DRAIN_QUEUE_BACKLOG = Gauge(
    "drain_queue_backlog",
    "Queue backlog snapshot taken at the start of the last cycle",
    ["queue"],
)

DRAIN_BATCH_SIZE = Gauge(
    "drain_batch_size",
    "Effective batch size used by the last cycle",
    ["queue"],
)

# --- Coordinator metrics ---

DRAIN_RUNS_TOTAL = Counter(
    "drain_runs_total",
    "Coordinator runs by final status",
    ["coordinator", "status"],  # status: completed | skipped | aborted
)


class MetricsRegistry:
    """Centralized access to drain metrics."""

    drain_items_total = DRAIN_ITEMS_TOTAL
    drain_cycle_latency = DRAIN_CYCLE_LATENCY
    drain_queue_backlog = DRAIN_QUEUE_BACKLOG
    drain_batch_size = DRAIN_BATCH_SIZE
    drain_runs_total = DRAIN_RUNS_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
