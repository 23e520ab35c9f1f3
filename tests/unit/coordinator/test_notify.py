"""
Unit tests for notifiers and outcome severity.
"""

import pytest

from queue_drain.coordinator import (
    CycleOutcome,
    DrainTarget,
    LoguruNotifier,
    NotifierBus,
    Severity,
    classify_outcome,
    describe_outcome,
)


@pytest.mark.parametrize(
    "outcome,expected",
    [
        (CycleOutcome(queued=5, retrieved=5, saved=5, failed=0), Severity.INFO),
        (CycleOutcome(queued=5, retrieved=0, saved=0, failed=0), Severity.ERROR),
        (CycleOutcome(queued=0, retrieved=0, saved=0, failed=0), Severity.WARNING),
        (CycleOutcome(queued=3, retrieved=3, saved=2, failed=1), Severity.ERROR),
        # failures escalate even when the backlog snapshot was empty
        (CycleOutcome(queued=0, retrieved=1, saved=0, failed=1), Severity.ERROR),
    ],
)
def test_classify_outcome(outcome, expected):
    assert classify_outcome(outcome) == expected


def test_describe_outcome_mentions_reprocessing_on_failure():
    msg = describe_outcome(DrainTarget("q", "t"), CycleOutcome(3, 3, 2, 1))
    assert "q -> t" in msg
    assert "failed=1" in msg
    assert "remain in the queue for later re-processing" in msg


def test_cycle_outcome_invariant_enforced():
    with pytest.raises(ValueError):
        CycleOutcome(queued=1, retrieved=2, saved=1, failed=0)


@pytest.mark.asyncio
async def test_loguru_notifier_binds_context(log_records):
    n = LoguruNotifier({"server": "db1", "worker": "w"})
    await n.record(Severity.WARNING, "nothing to do", {"queue": "q", "worker": "override"})

    rec = log_records[-1]
    assert rec["level"] == "WARNING"
    assert rec["message"] == "nothing to do"
    assert rec["extra"] == {"server": "db1", "worker": "override", "queue": "q"}


@pytest.mark.asyncio
async def test_bus_isolates_subscriber_errors():
    seen = []

    class Boom:
        async def record(self, severity, message, context):
            raise RuntimeError("webhook down")

    class Collect:
        async def record(self, severity, message, context):
            seen.append((severity, message, dict(context)))

    collect = Collect()
    bus = NotifierBus(Boom(), collect)
    assert bus.subscriber_count == 2

    await bus.record(Severity.ERROR, "failed", {"queue": "q"})
    assert seen == [(Severity.ERROR, "failed", {"queue": "q"})]


@pytest.mark.asyncio
async def test_bus_subscribe_is_idempotent_and_unsubscribe_safe():
    class Noop:
        async def record(self, severity, message, context):
            pass

    n = Noop()
    bus = NotifierBus()
    bus.subscribe(n)
    bus.subscribe(n)
    assert bus.subscriber_count == 1

    bus.unsubscribe(n)
    bus.unsubscribe(n)
    assert bus.subscriber_count == 0
    await bus.record(Severity.INFO, "no subscribers", {})
