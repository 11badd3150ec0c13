"""
Tests for metric store backends.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import START, make_sample
from infra_monitor.exceptions import StoreWriteError
from infra_monitor.storage.metric_store import InMemoryMetricStore, RedisMetricStore
from infra_monitor.storage.redis_client import RedisOperationError


class TestInMemoryMetricStore:
    """Test suite for InMemoryMetricStore"""

    @pytest.fixture
    def store(self):
        return InMemoryMetricStore()

    @pytest.mark.asyncio
    async def test_query_window_newest_first(self, store):
        """Test query returns samples inside [start, end], newest first"""
        for minutes in (0, 1, 2, 3, 10):
            await store.append(make_sample(float(minutes), START + timedelta(minutes=minutes)))

        samples = await store.query(
            "cpu_usage", START + timedelta(minutes=1), START + timedelta(minutes=3)
        )

        assert [s.value for s in samples] == [3.0, 2.0, 1.0]

    @pytest.mark.asyncio
    async def test_query_limit_and_ascending(self, store):
        """Test limit and ascending order"""
        for minutes in range(5):
            await store.append(make_sample(float(minutes), START + timedelta(minutes=minutes)))

        samples = await store.query(
            "cpu_usage", START, START + timedelta(minutes=10), limit=2, descending=False
        )

        assert [s.value for s in samples] == [0.0, 1.0]

    @pytest.mark.asyncio
    async def test_query_filters_metric_and_provider(self, store):
        """Test query only returns the requested metric and provider"""
        await store.append(make_sample(1.0, START, provider="aws"))
        await store.append(make_sample(2.0, START, provider="gcp"))
        await store.append(make_sample(3.0, START, metric_name="memory_usage"))

        samples = await store.query("cpu_usage", START, START, provider="gcp")

        assert [s.value for s in samples] == [2.0]

    @pytest.mark.asyncio
    async def test_delete_before(self, store):
        """Test samples strictly older than the cutoff are deleted"""
        await store.append(make_sample(1.0, START - timedelta(days=31)))
        await store.append(make_sample(2.0, START - timedelta(days=30)))
        await store.append(make_sample(3.0, START))

        deleted = await store.delete_before(START - timedelta(days=30))

        assert deleted == 1
        assert len(store) == 2


class TestRedisMetricStore:
    """Test suite for RedisMetricStore error mapping"""

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.append_sample = AsyncMock()
        client.query_samples = AsyncMock(return_value=[])
        client.delete_samples_before = AsyncMock(return_value=4)
        return client

    @pytest.mark.asyncio
    async def test_append_maps_redis_error(self, redis_client):
        """Test Redis failures surface as StoreWriteError"""
        redis_client.append_sample.side_effect = RedisOperationError("boom")
        store = RedisMetricStore(redis_client)

        with pytest.raises(StoreWriteError) as exc_info:
            await store.append(make_sample(1.0))

        assert exc_info.value.operation == "append"
        assert isinstance(exc_info.value.cause, RedisOperationError)

    @pytest.mark.asyncio
    async def test_delete_before_returns_count(self, redis_client):
        """Test delete_before passes through the deleted count"""
        store = RedisMetricStore(redis_client)

        assert await store.delete_before(START) == 4
        redis_client.delete_samples_before.assert_awaited_once_with(START)

    @pytest.mark.asyncio
    async def test_provider_filter_applied_before_limit(self, redis_client):
        """Test provider filtering happens client-side before the limit"""
        redis_client.query_samples.return_value = [
            make_sample(1.0, START, provider="aws"),
            make_sample(2.0, START, provider="gcp"),
            make_sample(3.0, START, provider="gcp"),
        ]
        store = RedisMetricStore(redis_client)

        samples = await store.query("cpu_usage", START, START, limit=1, provider="gcp")

        assert [s.value for s in samples] == [2.0]
        assert redis_client.query_samples.call_args.kwargs["limit"] is None
