"""
Operator notifications for drain cycles.

LoguruNotifier writes structured records through loguru; NotifierBus fans a
record out to several notifiers (logs, chat hooks, metrics) with per-subscriber
error isolation.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from loguru import logger

from .types import CycleOutcome, DrainTarget, Notifier, Severity


class LoguruNotifier:
    """Notifier backed by loguru; context is attached via ``logger.bind``.

    Args:
        defaults: Context merged into every record (e.g. server/worker identity)
    """

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None):
        self._defaults = dict(defaults or {})

    async def record(
        self, severity: Severity, message: str, context: Mapping[str, Any]
    ) -> None:
        ctx = {**self._defaults, **context}
        logger.bind(**ctx).log(Severity(severity).value, message)


class NotifierBus:
    """Delivers each record to all subscribed notifiers.

    Subscribers are called in registration order. One subscriber's failure
    does not affect the others (best-effort delivery).

    Example:
        bus = NotifierBus()
        bus.subscribe(LoguruNotifier({"server": "db1"}))
        await bus.record(Severity.ERROR, "nothing saved", {"queue": "donations"})
    """

    def __init__(self, *notifiers: Notifier) -> None:
        self._subs: list[Notifier] = []
        for n in notifiers:
            self.subscribe(n)

    def subscribe(self, notifier: Notifier) -> None:
        if notifier not in self._subs:
            self._subs.append(notifier)
            logger.debug(f"Notifier subscribed (total: {len(self._subs)})")

    def unsubscribe(self, notifier: Notifier) -> None:
        """No-op if the notifier is not subscribed."""
        try:
            self._subs.remove(notifier)
            logger.debug(f"Notifier unsubscribed (total: {len(self._subs)})")
        except ValueError:
            pass

    async def record(
        self, severity: Severity, message: str, context: Mapping[str, Any]
    ) -> None:
        for notifier in list(self._subs):
            try:
                await notifier.record(severity, message, context)
            except Exception as exc:
                logger.warning(f"Notifier error (ignored): {type(exc).__name__}: {exc}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)


def classify_outcome(outcome: CycleOutcome) -> Severity:
    """Severity for a finished cycle.

    Failures always escalate to ERROR. A backlog with nothing saved is an
    ERROR; an empty queue with nothing saved is a WARNING.
    """
    if outcome.failed > 0:
        return Severity.ERROR
    if outcome.saved == 0:
        return Severity.ERROR if outcome.queued > 0 else Severity.WARNING
    return Severity.INFO


def describe_outcome(target: DrainTarget, outcome: CycleOutcome) -> str:
    msg = (
        f"Drained {target.queue} -> {target.table}: queued={outcome.queued} "
        f"retrieved={outcome.retrieved} saved={outcome.saved} failed={outcome.failed}"
    )
    if outcome.failed > 0:
        msg += (
            f"; {outcome.failed} item(s) could not be saved and remain in the queue "
            f"for later re-processing"
        )
    elif outcome.saved == 0 and outcome.queued > 0:
        msg += "; backlog exists but no items were saved"
    elif outcome.saved == 0:
        msg += "; nothing to do"
    return msg
