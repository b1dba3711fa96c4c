"""Tests for threshold and alert-history stores."""

import json
import typing
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import WatchError

from src.alerts.registry import ThresholdRegistry
from src.alerts.repository import (
    InMemoryEventStore,
    InMemoryThresholdStore,
    RedisEventStore,
    RedisThresholdStore,
    ThresholdStore,
)
from src.alerts.schemas import AlertEvent
from src.alerts.seed_data import default_thresholds


def _event(event_id: str, severity: str = "warning", acknowledged: bool = False) -> AlertEvent:
    return AlertEvent(
        id=event_id,
        threshold_id="cost-warning",
        threshold_name="Monthly Cost Warning",
        metric="cost",
        current_value=35.0,
        threshold_value=30,
        message="Monthly Cost Warning: 35.00 USD exceeds threshold of 30 USD",
        severity=severity,
        triggered_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        acknowledged=acknowledged,
    )


def _pipeline(mock_redis, *snapshots: list[AlertEvent]) -> MagicMock:
    """Attach a WATCH/MULTI pipeline whose LRANGE returns each snapshot in turn."""
    pipe = MagicMock()
    pipe.__aenter__ = AsyncMock(return_value=pipe)
    pipe.__aexit__ = AsyncMock(return_value=False)
    pipe.watch = AsyncMock()
    pipe.unwatch = AsyncMock()
    pipe.execute = AsyncMock()
    pipe.lrange = AsyncMock(side_effect=[
        [json.dumps(e.to_dict()) for e in snapshot] for snapshot in snapshots
    ])
    mock_redis.pipeline = MagicMock(return_value=pipe)
    return pipe


@pytest.fixture
def mock_redis():
    return AsyncMock()


# ── In-memory ───────────────────────────────────────────


class TestInMemoryEventStore:
    @pytest.mark.asyncio
    async def test_prepend_last_event_first(self):
        store = InMemoryEventStore()
        await store.prepend([_event("a"), _event("b")], limit=10)
        await store.prepend([_event("c")], limit=10)

        assert [e.id for e in await store.list()] == ["c", "b", "a"]

    @pytest.mark.asyncio
    async def test_prepend_truncates_oldest(self):
        store = InMemoryEventStore()
        await store.prepend([_event(str(i)) for i in range(5)], limit=3)

        assert [e.id for e in await store.list()] == ["4", "3", "2"]

    @pytest.mark.asyncio
    async def test_list_limit(self):
        store = InMemoryEventStore()
        await store.prepend([_event("a"), _event("b")], limit=10)

        assert len(await store.list(1)) == 1
        assert await store.list(0) == []
        assert await store.list(-5) == []

    @pytest.mark.asyncio
    async def test_acknowledge(self):
        store = InMemoryEventStore()
        await store.prepend([_event("a")], limit=10)

        assert await store.acknowledge("a") is True
        assert await store.acknowledge("a") is True
        assert await store.acknowledge("zzz") is False

    @pytest.mark.asyncio
    async def test_acknowledge_all_counts_transitions(self):
        store = InMemoryEventStore()
        await store.prepend([_event("a"), _event("b", acknowledged=True), _event("c")], limit=10)

        assert await store.acknowledge_all() == 2
        assert all(e.acknowledged for e in await store.list())


class TestInMemoryThresholdStore:
    @pytest.mark.asyncio
    async def test_save_unknown(self, cost_threshold):
        store = InMemoryThresholdStore()
        assert await store.save(cost_threshold) is False

    @pytest.mark.asyncio
    async def test_save_in_place_keeps_order(self):
        seeds = default_thresholds()
        store = InMemoryThresholdStore(seeds)
        seeds[2].value = 7.0

        assert await store.save(seeds[2]) is True
        assert [t.id for t in await store.list()] == [t.id for t in default_thresholds()]


# ── Redis ───────────────────────────────────────────────


class TestRedisThresholdStore:
    @pytest.mark.asyncio
    async def test_list_preserves_order(self, mock_redis):
        seeds = default_thresholds()[:2]
        mock_redis.lrange.return_value = [t.id for t in seeds]
        mock_redis.hmget.return_value = [json.dumps(t.to_dict()) for t in seeds]
        store = RedisThresholdStore(mock_redis, key_prefix="test")

        listed = await store.list()

        assert [t.id for t in listed] == ["cost-warning", "cost-critical"]
        mock_redis.lrange.assert_awaited_once_with("test:thresholds:order", 0, -1)

    @pytest.mark.asyncio
    async def test_list_skips_missing_rows(self, mock_redis):
        seed = default_thresholds()[0]
        mock_redis.lrange.return_value = ["ghost", seed.id]
        mock_redis.hmget.return_value = [None, json.dumps(seed.to_dict())]
        store = RedisThresholdStore(mock_redis)

        assert [t.id for t in await store.list()] == [seed.id]

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_redis):
        mock_redis.hget.return_value = None
        assert await RedisThresholdStore(mock_redis).get("nope") is None

    @pytest.mark.asyncio
    async def test_add_writes_hash_and_order(self, mock_redis, cost_threshold):
        store = RedisThresholdStore(mock_redis, key_prefix="test")
        await store.add(cost_threshold)

        mock_redis.hset.assert_awaited_once()
        key, field, raw = mock_redis.hset.call_args.args
        assert (key, field) == ("test:thresholds", "cost-warning")
        assert json.loads(raw)["value"] == 30
        mock_redis.rpush.assert_awaited_once_with("test:thresholds:order", "cost-warning")

    @pytest.mark.asyncio
    async def test_save_missing_returns_false(self, mock_redis, cost_threshold):
        mock_redis.hexists.return_value = False
        store = RedisThresholdStore(mock_redis)

        assert await store.save(cost_threshold) is False
        mock_redis.hset.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, mock_redis):
        mock_redis.hdel.return_value = 1
        store = RedisThresholdStore(mock_redis, key_prefix="test")

        assert await store.delete("cost-warning") is True
        mock_redis.lrem.assert_awaited_once_with("test:thresholds:order", 0, "cost-warning")

    @pytest.mark.asyncio
    async def test_seed_once(self, mock_redis):
        mock_redis.set.return_value = None  # marker already present
        store = RedisThresholdStore(mock_redis, key_prefix="test")

        assert await store.seed(default_thresholds()) is False
        mock_redis.hset.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_seed_first_run(self, mock_redis):
        mock_redis.set.return_value = True
        mock_redis.hexists.return_value = False
        store = RedisThresholdStore(mock_redis, key_prefix="test")

        assert await store.seed(default_thresholds()) is True
        mock_redis.set.assert_awaited_once_with("test:thresholds:seeded", "1", nx=True)
        assert mock_redis.rpush.await_count == 7


class TestRedisEventStore:
    @pytest.mark.asyncio
    async def test_prepend_lpush_then_trim(self, mock_redis):
        store = RedisEventStore(mock_redis, key_prefix="test")
        await store.prepend([_event("a"), _event("b")], limit=100)

        args = mock_redis.lpush.call_args.args
        assert args[0] == "test:events"
        assert [json.loads(raw)["id"] for raw in args[1:]] == ["a", "b"]
        mock_redis.ltrim.assert_awaited_once_with("test:events", 0, 99)

    @pytest.mark.asyncio
    async def test_prepend_empty_is_noop(self, mock_redis):
        await RedisEventStore(mock_redis).prepend([], limit=100)
        mock_redis.lpush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_with_limit(self, mock_redis):
        mock_redis.lrange.return_value = [json.dumps(_event("a").to_dict())]
        store = RedisEventStore(mock_redis, key_prefix="test")

        events = await store.list(limit=1)

        assert [e.id for e in events] == ["a"]
        mock_redis.lrange.assert_awaited_once_with("test:events", 0, 0)

    @pytest.mark.asyncio
    async def test_list_zero_limit(self, mock_redis):
        assert await RedisEventStore(mock_redis).list(limit=0) == []
        mock_redis.lrange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_acknowledge_sets_by_index(self, mock_redis):
        pipe = _pipeline(mock_redis, [_event("a"), _event("b")])
        store = RedisEventStore(mock_redis, key_prefix="test")

        assert await store.acknowledge("b") is True

        pipe.watch.assert_awaited_once_with("test:events")
        pipe.multi.assert_called_once()
        key, index, raw = pipe.lset.call_args.args
        assert (key, index) == ("test:events", 1)
        assert json.loads(raw)["acknowledged"] is True
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_acknowledge_already_acknowledged(self, mock_redis):
        pipe = _pipeline(mock_redis, [_event("a", acknowledged=True)])
        store = RedisEventStore(mock_redis)

        assert await store.acknowledge("a") is True
        pipe.lset.assert_not_called()
        pipe.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_acknowledge_unknown(self, mock_redis):
        _pipeline(mock_redis, [_event("a")])
        assert await RedisEventStore(mock_redis).acknowledge("nope") is False

    @pytest.mark.asyncio
    async def test_acknowledge_retries_after_concurrent_push(self, mock_redis):
        pipe = _pipeline(
            mock_redis,
            [_event("a"), _event("b")],
            [_event("c"), _event("a"), _event("b")],
        )
        pipe.execute.side_effect = [WatchError(), None]
        store = RedisEventStore(mock_redis, key_prefix="test")

        assert await store.acknowledge("a") is True

        assert pipe.execute.await_count == 2
        key, index, raw = pipe.lset.call_args.args
        assert index == 1
        assert json.loads(raw)["id"] == "a"

    @pytest.mark.asyncio
    async def test_acknowledge_all(self, mock_redis):
        pipe = _pipeline(
            mock_redis,
            [_event("a"), _event("b", acknowledged=True), _event("c")],
        )
        store = RedisEventStore(mock_redis)

        assert await store.acknowledge_all() == 2
        assert [c.args[1] for c in pipe.lset.call_args_list] == [0, 2]


# ── Type hints ──────────────────────────────────────────


class TestListAnnotations:
    """Stores define a ``list`` method; ``list[...]`` hints must still mean the builtin."""

    @pytest.mark.parametrize("method", [
        ThresholdStore.replace_all,
        RedisThresholdStore.replace_all,
        RedisThresholdStore.seed,
        ThresholdRegistry.reset_to_defaults,
    ])
    def test_hints_resolve(self, method):
        hints = typing.get_type_hints(method)
        assert list in {typing.get_origin(h) for h in hints.values()}
