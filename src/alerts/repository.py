"""Threshold and alert-history stores.

Two abstract stores with interchangeable backends:

- ``ThresholdStore``: ordered threshold definitions keyed by id
- ``EventStore``: most-recent-first alert history with a size cap

``InMemory*`` stores keep state in the process (tests, single-instance
deployments). ``Redis*`` stores persist across restarts using an async Redis
client created with ``decode_responses=True``.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from redis.exceptions import WatchError

from src.alerts.schemas import AlertEvent, Threshold

logger = logging.getLogger(__name__)


class ThresholdStore(ABC):
    """Ordered collection of Threshold records keyed by id."""

    @abstractmethod
    async def list(self) -> list[Threshold]:
        """Return all thresholds in insertion order."""

    @abstractmethod
    async def get(self, threshold_id: str) -> Threshold | None:
        """Return the threshold with this id, or None."""

    @abstractmethod
    async def add(self, threshold: Threshold) -> Threshold:
        """Append a new threshold."""

    @abstractmethod
    async def save(self, threshold: Threshold) -> bool:
        """Overwrite an existing threshold in place.

        Returns:
            False if no threshold with that id exists.
        """

    @abstractmethod
    async def delete(self, threshold_id: str) -> bool:
        """Remove a threshold. Returns True if one was removed."""

    @abstractmethod
    async def replace_all(self, thresholds: list[Threshold]) -> None:
        """Replace the whole collection."""


class EventStore(ABC):
    """Alert history, newest first, capped at a fixed size."""

    @abstractmethod
    async def prepend(self, events: list[AlertEvent], limit: int) -> None:
        """Insert events at the head in order, then truncate to ``limit``.

        Each event is pushed to the front in turn, so the last event in
        ``events`` ends up first in the history.
        """

    @abstractmethod
    async def list(self, limit: int | None = None) -> list[AlertEvent]:
        """Return up to ``limit`` events, newest first."""

    @abstractmethod
    async def acknowledge(self, event_id: str) -> bool:
        """Mark one event acknowledged.

        Returns:
            True if the event exists (already-acknowledged included).
        """

    @abstractmethod
    async def acknowledge_all(self) -> int:
        """Acknowledge every pending event. Returns how many changed."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop the entire history."""


# ── In-memory backends ──────────────────────────────────


class InMemoryThresholdStore(ThresholdStore):
    """Process-local threshold store."""

    def __init__(self, thresholds: list[Threshold] | None = None) -> None:
        self._thresholds: list[Threshold] = list(thresholds or [])

    def _index(self, threshold_id: str) -> int:
        for i, t in enumerate(self._thresholds):
            if t.id == threshold_id:
                return i
        return -1

    async def list(self) -> list[Threshold]:
        return list(self._thresholds)

    async def get(self, threshold_id: str) -> Threshold | None:
        idx = self._index(threshold_id)
        return self._thresholds[idx] if idx >= 0 else None

    async def add(self, threshold: Threshold) -> Threshold:
        self._thresholds.append(threshold)
        return threshold

    async def save(self, threshold: Threshold) -> bool:
        idx = self._index(threshold.id)
        if idx < 0:
            return False
        self._thresholds[idx] = threshold
        return True

    async def delete(self, threshold_id: str) -> bool:
        idx = self._index(threshold_id)
        if idx < 0:
            return False
        del self._thresholds[idx]
        return True

    async def replace_all(self, thresholds: list[Threshold]) -> None:
        self._thresholds = list(thresholds)


class InMemoryEventStore(EventStore):
    """Process-local alert history."""

    def __init__(self) -> None:
        self._events: list[AlertEvent] = []

    async def prepend(self, events: list[AlertEvent], limit: int) -> None:
        for event in events:
            self._events.insert(0, event)
        del self._events[limit:]

    async def list(self, limit: int | None = None) -> list[AlertEvent]:
        if limit is None:
            return list(self._events)
        return self._events[:max(limit, 0)]

    async def acknowledge(self, event_id: str) -> bool:
        for event in self._events:
            if event.id == event_id:
                event.acknowledged = True
                return True
        return False

    async def acknowledge_all(self) -> int:
        count = 0
        for event in self._events:
            if not event.acknowledged:
                event.acknowledged = True
                count += 1
        return count

    async def clear(self) -> None:
        self._events = []


# ── Redis backends ──────────────────────────────────────


class RedisThresholdStore(ThresholdStore):
    """Thresholds in a Redis hash, with insertion order in a list.

    Keys:
        ``{prefix}:thresholds``: HASH id → JSON record
        ``{prefix}:thresholds:order``: LIST of ids
        ``{prefix}:thresholds:seeded``: marker set once defaults are loaded
    """

    def __init__(self, redis_client: Any, key_prefix: str = "lands:alerts") -> None:
        self._redis = redis_client
        self._hash_key = f"{key_prefix}:thresholds"
        self._order_key = f"{key_prefix}:thresholds:order"
        self._seeded_key = f"{key_prefix}:thresholds:seeded"

    async def list(self) -> list[Threshold]:
        ids = await self._redis.lrange(self._order_key, 0, -1)
        if not ids:
            return []
        rows = await self._redis.hmget(self._hash_key, ids)
        thresholds: list[Threshold] = []
        for threshold_id, raw in zip(ids, rows):
            if raw is None:
                logger.warning("Threshold %s in order list but missing from hash", threshold_id)
                continue
            thresholds.append(Threshold.from_dict(json.loads(raw)))
        return thresholds

    async def get(self, threshold_id: str) -> Threshold | None:
        raw = await self._redis.hget(self._hash_key, threshold_id)
        if raw is None:
            return None
        return Threshold.from_dict(json.loads(raw))

    async def add(self, threshold: Threshold) -> Threshold:
        await self._redis.hset(self._hash_key, threshold.id, json.dumps(threshold.to_dict()))
        await self._redis.rpush(self._order_key, threshold.id)
        return threshold

    async def save(self, threshold: Threshold) -> bool:
        if not await self._redis.hexists(self._hash_key, threshold.id):
            return False
        await self._redis.hset(self._hash_key, threshold.id, json.dumps(threshold.to_dict()))
        return True

    async def delete(self, threshold_id: str) -> bool:
        removed = await self._redis.hdel(self._hash_key, threshold_id)
        await self._redis.lrem(self._order_key, 0, threshold_id)
        return bool(removed)

    async def replace_all(self, thresholds: list[Threshold]) -> None:
        await self._redis.delete(self._hash_key, self._order_key)
        for threshold in thresholds:
            await self.add(threshold)

    async def seed(self, thresholds: list[Threshold]) -> bool:
        """Load ``thresholds`` the first time this key prefix is used.

        Seeding is guarded by a marker key set with NX, so deleting every
        threshold does not bring the defaults back on restart.
        """
        if not await self._redis.set(self._seeded_key, "1", nx=True):
            return False
        for threshold in thresholds:
            if not await self._redis.hexists(self._hash_key, threshold.id):
                await self.add(threshold)
        logger.info("Seeded %d default threshold(s) into Redis", len(thresholds))
        return True


class RedisEventStore(EventStore):
    """Alert history as a capped Redis list of JSON records (LPUSH + LTRIM)."""

    def __init__(self, redis_client: Any, key_prefix: str = "lands:alerts") -> None:
        self._redis = redis_client
        self._key = f"{key_prefix}:events"

    async def _load(self, limit: int | None = None) -> list[AlertEvent]:
        end = -1 if limit is None else limit - 1
        if end < -1:
            return []
        rows = await self._redis.lrange(self._key, 0, end)
        return [AlertEvent.from_dict(json.loads(raw)) for raw in rows]

    async def prepend(self, events: list[AlertEvent], limit: int) -> None:
        if not events:
            return
        await self._redis.lpush(self._key, *[json.dumps(e.to_dict()) for e in events])
        await self._redis.ltrim(self._key, 0, limit - 1)

    async def list(self, limit: int | None = None) -> list[AlertEvent]:
        if limit is not None and limit <= 0:
            return []
        return await self._load(limit)

    async def acknowledge(self, event_id: str) -> bool:
        matched, _ = await self._acknowledge_where(lambda e: e.id == event_id)
        return matched > 0

    async def acknowledge_all(self) -> int:
        _, changed = await self._acknowledge_where(lambda e: True)
        return changed

    async def _acknowledge_where(self, match: Callable[[AlertEvent], bool]) -> tuple[int, int]:
        """Flag matching events under WATCH so a concurrent LPUSH cannot
        shift the indices between the read and the LSET writes.

        Returns:
            (events matched, events newly acknowledged)
        """
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(self._key)
                    rows = await pipe.lrange(self._key, 0, -1)
                    matched = [
                        (idx, event)
                        for idx, event in enumerate(
                            AlertEvent.from_dict(json.loads(raw)) for raw in rows
                        )
                        if match(event)
                    ]
                    pending = [(idx, event) for idx, event in matched if not event.acknowledged]
                    if not pending:
                        await pipe.unwatch()
                        return len(matched), 0

                    pipe.multi()
                    for idx, event in pending:
                        event.acknowledged = True
                        pipe.lset(self._key, idx, json.dumps(event.to_dict()))
                    await pipe.execute()
                    return len(matched), len(pending)
                except WatchError:
                    logger.debug("Alert history changed during acknowledge, retrying")

    async def clear(self) -> None:
        await self._redis.delete(self._key)
