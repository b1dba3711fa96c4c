"""Webhook dispatcher: signed delivery, retry, fan-out, and delivery log.

Every attempt is logged to the ``LogStore`` whether it succeeds or not, and
no delivery failure is ever raised to the caller. Failures come back as
``WebhookResult`` values so a misbehaving endpoint cannot take down
evaluation or the API.

Pattern: Orchestrator (like AlertService), delegating body shapes to the
stateless formatters in ``formatters.py``.
"""

import asyncio
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx

from src.notifications.config import NotificationConfig
from src.notifications.formatters import build_payload, get_formatter, signs_payload
from src.notifications.repository import (
    InMemoryLogStore,
    LogStore,
    WebhookStore,
)
from src.notifications.schemas import (
    TEST_EVENT,
    WebhookConfig,
    WebhookLog,
    WebhookPayload,
    WebhookResult,
)
from src.notifications.signing import sign_payload
from src.observability.metrics import MetricsCollector

if TYPE_CHECKING:
    from src.alerts.schemas import AlertEvent

logger = logging.getLogger(__name__)

TEST_MESSAGE = "This is a test webhook from Lands DB Monitoring System"


class NotificationDispatcher:
    """Delivers events to webhook channels.

    Args:
        config: Delivery settings. Defaults to ``NotificationConfig()``.
        log_store: Where attempts are recorded. Defaults to in-memory.
        webhook_store: Channel source for ``trigger_channels`` when no
            explicit channel list is passed.
        metrics: Optional Prometheus collector.
    """

    def __init__(
        self,
        config: NotificationConfig | None = None,
        log_store: LogStore | None = None,
        webhook_store: WebhookStore | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config or NotificationConfig()
        self._logs = log_store or InMemoryLogStore()
        self._webhooks = webhook_store
        self._metrics = metrics

    @property
    def webhook_store(self) -> WebhookStore | None:
        return self._webhooks

    def _encode(self, payload: WebhookPayload, channel: WebhookConfig) -> bytes:
        body = get_formatter(channel.format)(payload, channel)
        # Compact separators: the signature covers these exact bytes
        return json.dumps(body, separators=(",", ":"), default=str).encode("utf-8")

    def _build_headers(self, channel: WebhookConfig, body: bytes) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._config.user_agent,
            **channel.headers,
        }
        if channel.secret and signs_payload(channel.format):
            headers[self._config.signature_header] = sign_payload(channel.secret, body)
        return headers

    async def send(
        self,
        channel: WebhookConfig,
        event: str,
        data: dict[str, Any],
    ) -> WebhookResult:
        """Make one delivery attempt.

        Args:
            channel: Destination.
            event: Event type (e.g. ``alert.critical``).
            data: Event body placed under ``data`` in the envelope.

        Returns:
            WebhookResult. Never raises for delivery problems.
        """
        payload = build_payload(event, data, self._config.source)
        timeout = self._config.request_timeout_seconds

        try:
            body = self._encode(payload, channel)
        except (KeyError, TypeError, ValueError) as e:
            result = WebhookResult(success=False, error=f"Payload error: {e}")
            await self._record(channel, event, payload, result)
            return result

        headers = self._build_headers(channel, body)
        start = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(channel.url, content=body, headers=headers)
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)

            if resp.is_success:
                result = WebhookResult(
                    success=True,
                    status_code=resp.status_code,
                    response_time=elapsed_ms,
                )
            else:
                result = WebhookResult(
                    success=False,
                    status_code=resp.status_code,
                    response_time=elapsed_ms,
                    error=f"HTTP {resp.status_code}: {resp.reason_phrase}",
                )
                logger.warning(
                    "Webhook %s returned %d for event %s",
                    channel.id, resp.status_code, event,
                )
        except httpx.TimeoutException:
            result = WebhookResult(
                success=False,
                response_time=round((time.perf_counter() - start) * 1000, 2),
                error=f"Request timed out after {timeout}s",
            )
            logger.warning("Webhook %s timed out for event %s", channel.id, event)
        except Exception as e:
            result = WebhookResult(
                success=False,
                response_time=round((time.perf_counter() - start) * 1000, 2),
                error=str(e) or type(e).__name__,
            )
            logger.warning("Webhook %s failed for event %s: %s", channel.id, event, e)

        await self._record(channel, event, payload, result)
        return result

    async def send_with_retry(
        self,
        channel: WebhookConfig,
        event: str,
        data: dict[str, Any],
        cancel_event: asyncio.Event | None = None,
    ) -> WebhookResult:
        """Send with up to ``channel.retry_count`` retries.

        Waits ``channel.retry_delay`` seconds between attempts and stops at
        the first success. Setting ``cancel_event`` ends a pending wait and
        prevents further attempts.

        Returns:
            The last attempt's result.
        """
        if cancel_event is not None and cancel_event.is_set():
            return WebhookResult(success=False, error="Delivery cancelled")

        max_attempts = channel.retry_count + 1
        result = WebhookResult(success=False, error="No attempts made")

        for attempt in range(max_attempts):
            if attempt > 0:
                cancelled = await self._wait(channel.retry_delay, cancel_event)
                if cancelled:
                    logger.info(
                        "Delivery of %s to %s cancelled after %d attempt(s)",
                        event, channel.id, attempt,
                    )
                    return result

            result = await self.send(channel, event, data)
            if result.success:
                if attempt > 0:
                    logger.info(
                        "Event %s delivered to %s on attempt %d",
                        event, channel.id, attempt + 1,
                    )
                return result

        logger.warning(
            "All %d attempts exhausted for event %s on channel %s: %s",
            max_attempts, event, channel.id, result.error,
        )
        return result

    @staticmethod
    async def _wait(delay: float, cancel_event: asyncio.Event | None) -> bool:
        """Sleep ``delay`` seconds. Returns True if cancelled while waiting."""
        if cancel_event is None:
            await asyncio.sleep(delay)
            return False
        if cancel_event.is_set():
            return True
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def trigger_channels(
        self,
        event: str,
        data: dict[str, Any],
        channels: list[WebhookConfig] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, WebhookResult]:
        """Deliver ``event`` to every active channel subscribed to it.

        Selected channels are delivered concurrently. Channels that are
        inactive or not subscribed are not contacted and get no log entry.

        Args:
            event: Event type.
            data: Event body.
            channels: Candidate channels. Defaults to the webhook store.
            cancel_event: Cancels pending retries on all channels.

        Returns:
            Mapping of channel id to final result.
        """
        if channels is None:
            channels = await self._webhooks.list() if self._webhooks else []

        selected = [c for c in channels if c.accepts(event)]
        if not selected:
            logger.debug("No active channels subscribed to %s", event)
            return {}

        results = await asyncio.gather(*(
            self.send_with_retry(c, event, data, cancel_event) for c in selected
        ))
        outcome = {c.id: r for c, r in zip(selected, results)}
        self._record_fanout(event, outcome)
        return outcome

    async def test_channel(self, channel: WebhookConfig) -> WebhookResult:
        """Send a single ``test.connection`` event, without retries."""
        return await self.send(channel, TEST_EVENT, {
            "message": TEST_MESSAGE,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    async def dispatch_alerts(
        self,
        events: list["AlertEvent"],
    ) -> dict[str, dict[str, WebhookResult]]:
        """Fan out alert events as ``alert.<severity>``.

        Each event is dispatched independently. An unexpected error for
        one event does not affect the others.

        Returns:
            Mapping of alert id to its per-channel results.
        """
        outcomes: dict[str, dict[str, WebhookResult]] = {}
        for alert in events:
            try:
                outcomes[alert.id] = await self.trigger_channels(
                    f"alert.{alert.severity}", alert.to_dict(),
                )
            except Exception as e:
                logger.error("Unexpected error dispatching alert %s: %s", alert.id, e)
        return outcomes

    async def get_logs(self, limit: int | None = None) -> list[WebhookLog]:
        """Delivery log, newest first."""
        return await self._logs.list(limit)

    async def _record(
        self,
        channel: WebhookConfig,
        event: str,
        payload: WebhookPayload,
        result: WebhookResult,
    ) -> None:
        now = datetime.now(timezone.utc)
        channel.last_triggered = now
        channel.last_status = "success" if result.success else "failed"

        entry = WebhookLog(
            id=f"log-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:6]}",
            webhook_id=channel.id,
            webhook_name=channel.name,
            event=event,
            payload=payload,
            response=result,
            timestamp=now,
        )

        try:
            await self._logs.append(entry, self._config.log_limit)
        except Exception as e:
            logger.warning("Failed to record webhook log for %s: %s", channel.id, e)

        if self._webhooks is not None:
            try:
                # Only delivery status is written back; the caller's channel
                # may be an unsaved draft of the stored one
                stored = await self._webhooks.get(channel.id)
                if stored is not None:
                    stored.last_triggered = channel.last_triggered
                    stored.last_status = channel.last_status
                    await self._webhooks.upsert(stored)
            except Exception as e:
                logger.warning("Failed to update status for %s: %s", channel.id, e)

        if self._metrics is not None:
            latency = result.response_time / 1000 if result.response_time is not None else None
            self._metrics.record_webhook_delivery(channel.id, result.success, latency)

    def _record_fanout(self, event: str, outcome: dict[str, WebhookResult]) -> None:
        """Log the fan-out summary at a level matching its outcome."""
        successes = [cid for cid, r in outcome.items() if r.success]
        failures = [cid for cid, r in outcome.items() if not r.success]

        if failures and not successes:
            logger.error("Event %s failed ALL channels: %s", event, failures)
        elif failures:
            logger.warning(
                "Event %s partial delivery: ok=%s failed=%s",
                event, successes, failures,
            )
        else:
            logger.debug("Event %s delivered to all channels: %s", event, successes)
