"""Webhook channel and delivery-log stores.

- ``WebhookStore``: channel configurations keyed by id
- ``LogStore``: newest-first delivery log with a size cap

Each has an in-memory backend and a Redis backend that mirrors the alert
stores in ``src.alerts.repository``.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from src.notifications.schemas import WebhookConfig, WebhookLog

logger = logging.getLogger(__name__)


class WebhookStore(ABC):
    """Ordered collection of webhook channel configurations."""

    @abstractmethod
    async def list(self) -> list[WebhookConfig]:
        """Return all channels in insertion order."""

    @abstractmethod
    async def get(self, webhook_id: str) -> WebhookConfig | None:
        """Return one channel, or None."""

    @abstractmethod
    async def upsert(self, webhook: WebhookConfig) -> WebhookConfig:
        """Insert a new channel or overwrite the one with the same id."""


class LogStore(ABC):
    """Delivery log, newest first, capped at a fixed size."""

    @abstractmethod
    async def append(self, entry: WebhookLog, limit: int) -> None:
        """Add ``entry`` at the head and drop entries beyond ``limit``."""

    @abstractmethod
    async def list(self, limit: int | None = None) -> list[WebhookLog]:
        """Return up to ``limit`` entries, newest first."""


# ── In-memory backends ──────────────────────────────────


class InMemoryWebhookStore(WebhookStore):
    """Process-local channel store."""

    def __init__(self, webhooks: list[WebhookConfig] | None = None) -> None:
        self._webhooks: dict[str, WebhookConfig] = {w.id: w for w in webhooks or []}

    async def list(self) -> list[WebhookConfig]:
        return list(self._webhooks.values())

    async def get(self, webhook_id: str) -> WebhookConfig | None:
        return self._webhooks.get(webhook_id)

    async def upsert(self, webhook: WebhookConfig) -> WebhookConfig:
        self._webhooks[webhook.id] = webhook
        return webhook


class InMemoryLogStore(LogStore):
    """Process-local delivery log."""

    def __init__(self) -> None:
        self._entries: list[WebhookLog] = []

    async def append(self, entry: WebhookLog, limit: int) -> None:
        self._entries.insert(0, entry)
        del self._entries[limit:]

    async def list(self, limit: int | None = None) -> list[WebhookLog]:
        if limit is None:
            return list(self._entries)
        return self._entries[:max(limit, 0)]


# ── Redis backends ──────────────────────────────────────


class RedisWebhookStore(WebhookStore):
    """Channels in a Redis hash plus an insertion-order list.

    Secrets are stored with the record; protect the Redis instance
    accordingly.
    """

    def __init__(self, redis_client: Any, key_prefix: str = "lands:notify") -> None:
        self._redis = redis_client
        self._hash_key = f"{key_prefix}:webhooks"
        self._order_key = f"{key_prefix}:webhooks:order"

    async def list(self) -> list[WebhookConfig]:
        ids = await self._redis.lrange(self._order_key, 0, -1)
        if not ids:
            return []
        rows = await self._redis.hmget(self._hash_key, ids)
        return [
            WebhookConfig.from_dict(json.loads(raw))
            for raw in rows
            if raw is not None
        ]

    async def get(self, webhook_id: str) -> WebhookConfig | None:
        raw = await self._redis.hget(self._hash_key, webhook_id)
        if raw is None:
            return None
        return WebhookConfig.from_dict(json.loads(raw))

    async def upsert(self, webhook: WebhookConfig) -> WebhookConfig:
        payload = json.dumps(webhook.to_dict(include_secret=True))
        created = await self._redis.hset(self._hash_key, webhook.id, payload)
        if created:
            await self._redis.rpush(self._order_key, webhook.id)
        return webhook

    async def seed(self, webhooks: list[WebhookConfig]) -> int:
        """Insert channels whose ids are not stored yet. Returns count added."""
        added = 0
        for webhook in webhooks:
            if await self._redis.hexists(self._hash_key, webhook.id):
                continue
            await self.upsert(webhook)
            added += 1
        if added:
            logger.info("Seeded %d webhook channel(s) into Redis", added)
        return added


class RedisLogStore(LogStore):
    """Delivery log as a capped Redis list (LPUSH + LTRIM)."""

    def __init__(self, redis_client: Any, key_prefix: str = "lands:notify") -> None:
        self._redis = redis_client
        self._key = f"{key_prefix}:logs"

    async def append(self, entry: WebhookLog, limit: int) -> None:
        await self._redis.lpush(self._key, json.dumps(entry.to_dict()))
        await self._redis.ltrim(self._key, 0, limit - 1)

    async def list(self, limit: int | None = None) -> list[WebhookLog]:
        if limit is not None and limit <= 0:
            return []
        end = -1 if limit is None else limit - 1
        rows = await self._redis.lrange(self._key, 0, end)
        return [WebhookLog.from_dict(json.loads(raw)) for raw in rows]
