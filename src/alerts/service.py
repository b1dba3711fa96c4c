"""Alert service orchestrating threshold evaluation, history, and notification.

The async component with side effects: it reads thresholds from the
registry, stamps ``last_triggered``, writes the alert history, and hands new
events to the webhook dispatcher and email sender. The comparison logic
lives in the stateless functions of ``triggers.py``.
"""

import logging
from datetime import datetime, timedelta, timezone

from src.alerts.config import AlertConfig
from src.alerts.registry import ThresholdRegistry
from src.alerts.repository import EventStore, InMemoryEventStore
from src.alerts.schemas import AlertEvent, AlertSummary, Threshold, UsageMetrics
from src.alerts.triggers import check_threshold
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.email import EmailSender, alert_email
from src.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class AlertService:
    """Evaluates usage snapshots against the registry's thresholds.

    Args:
        config: History cap, cool-down, and email recipients.
        registry: Source of threshold definitions.
        event_store: Alert history. Defaults to in-memory.
        dispatcher: Webhook fan-out for new events. Optional.
        email_sender: Email delivery for ``notify_email`` thresholds. Optional.
        metrics: Prometheus collector. Optional.
    """

    def __init__(
        self,
        config: AlertConfig,
        registry: ThresholdRegistry,
        event_store: EventStore | None = None,
        dispatcher: NotificationDispatcher | None = None,
        email_sender: EmailSender | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._events = event_store or InMemoryEventStore()
        self._dispatcher = dispatcher
        self._email = email_sender
        self._metrics = metrics

    @property
    def registry(self) -> ThresholdRegistry:
        return self._registry

    def _in_cooldown(self, threshold: Threshold, now: datetime) -> bool:
        """True if the threshold fired within the cool-down window.

        A cool-down of 0 disables suppression entirely.
        """
        if self._config.cooldown_seconds <= 0 or threshold.last_triggered is None:
            return False
        window = timedelta(seconds=self._config.cooldown_seconds)
        return now - threshold.last_triggered < window

    async def evaluate(
        self,
        metrics: UsageMetrics,
        notify: bool = True,
    ) -> list[AlertEvent]:
        """Check every enabled threshold against one usage snapshot.

        Triggered thresholds get ``last_triggered`` stamped, and the new
        events are prepended to history (most recent first) and truncated
        to ``history_limit``.

        Args:
            metrics: Current usage snapshot. Storage and bandwidth in bytes.
            notify: Deliver the new events to webhooks and email before
                returning. Pass False to call ``notify()`` separately.

        Returns:
            Only the events created by this call.
        """
        now = datetime.now(timezone.utc)
        thresholds = await self._registry.list()
        if self._metrics is not None:
            self._metrics.record_evaluation()

        triggered: list[AlertEvent] = []
        for threshold in thresholds:
            if not threshold.enabled:
                continue
            if self._in_cooldown(threshold, now):
                logger.debug("Threshold %s in cool-down, skipped", threshold.id)
                continue

            event = check_threshold(threshold, metrics, now)
            if event is None:
                continue

            await self._registry.mark_triggered(threshold.id, now)
            triggered.append(event)
            if self._metrics is not None:
                self._metrics.record_alert_triggered(event.severity, event.metric)

        if not triggered:
            logger.debug("Evaluation: %d thresholds, none triggered", len(thresholds))
            return []

        await self._events.prepend(triggered, self._config.history_limit)
        logger.info(
            "Evaluation: %d thresholds, %d triggered",
            len(thresholds), len(triggered),
        )

        if notify:
            await self.notify(triggered)
        return triggered

    async def notify(self, events: list[AlertEvent]) -> None:
        """Deliver events to webhooks and email. Failures are logged only."""
        if not events:
            return

        if self._dispatcher is not None:
            try:
                await self._dispatcher.dispatch_alerts(events)
            except Exception as e:
                logger.error("Webhook dispatch failed: %s", e)

        if self._email is not None and self._config.alert_recipients:
            await self._email_alerts(events)

    async def _email_alerts(self, events: list[AlertEvent]) -> None:
        thresholds = {t.id: t for t in await self._registry.list()}
        for event in events:
            threshold = thresholds.get(event.threshold_id)
            if threshold is None or not threshold.notify_email:
                continue

            content = alert_email(
                alert_type=f"{event.severity.upper()}: {event.threshold_name}",
                system_name=self._config.system_name,
                message=event.message,
                timestamp=event.triggered_at.isoformat(),
            )
            try:
                result = await self._email.send(
                    content.to_message(list(self._config.alert_recipients))
                )
            except Exception as e:
                logger.error("Alert email for %s failed: %s", event.id, e)
                continue
            if not result.success:
                logger.warning("Alert email for %s not sent: %s", event.id, result.error)

    async def get_events(self, limit: int | None = None) -> list[AlertEvent]:
        """Most recent events first, ``default_event_limit`` when no limit given."""
        if limit is None:
            limit = self._config.default_event_limit
        return await self._events.list(limit)

    async def get_unacknowledged(self) -> list[AlertEvent]:
        return [e for e in await self._events.list() if not e.acknowledged]

    async def acknowledge(self, event_id: str) -> bool:
        """Mark one event reviewed. False only when the id is unknown."""
        return await self._events.acknowledge(event_id)

    async def acknowledge_all(self) -> int:
        """Mark every event reviewed. Returns how many changed."""
        count = await self._events.acknowledge_all()
        if count:
            logger.info("Acknowledged %d alert(s)", count)
        return count

    async def clear_history(self) -> None:
        await self._events.clear()
        logger.info("Alert history cleared")

    async def get_summary(self) -> AlertSummary:
        """Counts computed from the current thresholds and history."""
        thresholds = await self._registry.list()
        events = await self._events.list()
        pending = [e for e in events if not e.acknowledged]
        return AlertSummary(
            total_thresholds=len(thresholds),
            enabled_thresholds=sum(1 for t in thresholds if t.enabled),
            total_alerts=len(events),
            unacknowledged_alerts=len(pending),
            critical_alerts=sum(1 for e in pending if e.severity == "critical"),
            warning_alerts=sum(1 for e in pending if e.severity == "warning"),
            last_alert_time=events[0].triggered_at if events else None,
        )
