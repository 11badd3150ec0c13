"""
Tests for the Redis client using a mocked redis.asyncio connection.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import RedisError

from conftest import START, make_rule, make_sample
from infra_monitor.config.models import RedisConnectionConfig
from infra_monitor.models import Alert
from infra_monitor.storage.redis_client import (
    RedisClient,
    RedisConnectionException,
    RedisOperationError,
)


def mock_redis(execute_result=None):
    """Redis double whose pipeline() is an async context manager."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=execute_result or [])

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=pipe)
    context.__aexit__ = AsyncMock(return_value=False)

    redis = MagicMock()
    redis.pipeline = MagicMock(return_value=context)
    redis.zrevrangebyscore = AsyncMock(return_value=[])
    redis.zrangebyscore = AsyncMock(return_value=[])
    redis.smembers = AsyncMock(return_value=set())
    redis.zrevrange = AsyncMock(return_value=[])
    redis.mget = AsyncMock(return_value=[])
    redis.hset = AsyncMock(return_value=1)
    redis.hdel = AsyncMock(return_value=1)
    redis.hgetall = AsyncMock(return_value={})
    redis.ping = AsyncMock(return_value=True)
    return redis, pipe


def connected_client(redis):
    client = RedisClient(RedisConnectionConfig())
    client._client = redis
    client._connected = True
    return client


class TestRedisClientConnection:
    """Test suite for connection handling"""

    @pytest.mark.asyncio
    async def test_operations_require_connection(self):
        """Test calls before connect raise"""
        client = RedisClient(RedisConnectionConfig())

        assert client.is_connected is False
        with pytest.raises(RedisConnectionException):
            await client.append_sample(make_sample(1.0))

    @pytest.mark.asyncio
    async def test_ping_without_client(self):
        """Test ping reports False when never connected"""
        assert await RedisClient(RedisConnectionConfig()).ping() is False

    @pytest.mark.asyncio
    async def test_ping_failure(self):
        """Test ping swallows Redis errors into False"""
        redis, _ = mock_redis()
        redis.ping = AsyncMock(side_effect=RedisError("down"))

        assert await connected_client(redis).ping() is False


class TestRedisClientSamples:
    """Test suite for metric sample operations"""

    @pytest.mark.asyncio
    async def test_append_sample(self):
        """Test a sample is added to its metric's sorted set"""
        redis, pipe = mock_redis()
        sample = make_sample(85.0)

        await connected_client(redis).append_sample(sample)

        pipe.zadd.assert_called_once_with(
            "metrics:cpu_usage", {sample.model_dump_json(): START.timestamp()}
        )
        pipe.sadd.assert_called_once_with("metrics:names", "cpu_usage")
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_append_sample_failure(self):
        """Test Redis errors are raised as RedisOperationError"""
        redis, pipe = mock_redis()
        pipe.execute = AsyncMock(side_effect=RedisError("OOM"))

        with pytest.raises(RedisOperationError):
            await connected_client(redis).append_sample(make_sample(85.0))

    @pytest.mark.asyncio
    async def test_query_samples_newest_first(self):
        """Test descending queries use reverse score order with a limit"""
        redis, _ = mock_redis()
        newer = make_sample(90.0, START + timedelta(minutes=1))
        older = make_sample(80.0, START)
        redis.zrevrangebyscore = AsyncMock(
            return_value=[newer.model_dump_json(), older.model_dump_json()]
        )
        end = START + timedelta(minutes=5)

        samples = await connected_client(redis).query_samples("cpu_usage", START, end, limit=10)

        redis.zrevrangebyscore.assert_awaited_once_with(
            "metrics:cpu_usage", end.timestamp(), START.timestamp(), start=0, num=10
        )
        assert samples == [newer, older]

    @pytest.mark.asyncio
    async def test_query_samples_ascending_unbounded(self):
        """Test ascending queries without a limit"""
        redis, _ = mock_redis()
        end = START + timedelta(minutes=5)

        await connected_client(redis).query_samples("cpu_usage", START, end, descending=False)

        redis.zrangebyscore.assert_awaited_once_with(
            "metrics:cpu_usage", START.timestamp(), end.timestamp()
        )

    @pytest.mark.asyncio
    async def test_delete_samples_before(self):
        """Test retention trims every known metric with an exclusive bound"""
        redis, pipe = mock_redis(execute_result=[2, 3])
        redis.smembers = AsyncMock(return_value={"cpu_usage", "memory_usage"})

        deleted = await connected_client(redis).delete_samples_before(START)

        assert deleted == 5
        pipe.zremrangebyscore.assert_any_call("metrics:cpu_usage", "-inf", f"({START.timestamp()}")
        pipe.zremrangebyscore.assert_any_call(
            "metrics:memory_usage", "-inf", f"({START.timestamp()}"
        )

    @pytest.mark.asyncio
    async def test_delete_samples_no_metrics(self):
        """Test retention with nothing stored"""
        redis, pipe = mock_redis()

        assert await connected_client(redis).delete_samples_before(START) == 0
        pipe.execute.assert_not_awaited()


class TestRedisClientAlerts:
    """Test suite for alert operations"""

    @pytest.fixture
    def alert(self):
        return Alert.open_for(make_rule(), make_sample(85.0), START)

    @pytest.mark.asyncio
    async def test_set_open_alert(self, alert):
        """Test open alerts join the open index"""
        redis, pipe = mock_redis()

        await connected_client(redis).set_alert(alert)

        pipe.set.assert_called_once_with(f"alert:{alert.id}", alert.model_dump_json())
        pipe.zadd.assert_called_once_with("alerts:history", {alert.id: START.timestamp()})
        pipe.sadd.assert_called_once_with("alerts:open", alert.id)
        pipe.srem.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_resolved_alert(self, alert):
        """Test resolved alerts leave the open index"""
        redis, pipe = mock_redis()

        await connected_client(redis).set_alert(alert.resolve("auto", START))

        pipe.srem.assert_called_once_with("alerts:open", alert.id)
        pipe.sadd.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_alerts_skips_missing(self, alert):
        """Test expired or unparsable records are skipped"""
        redis, _ = mock_redis()
        redis.zrevrange = AsyncMock(return_value=[alert.id, "gone", "broken"])
        redis.mget = AsyncMock(return_value=[alert.model_dump_json(), None, "{not json"])

        alerts = await connected_client(redis).get_alerts()

        assert alerts == [alert]

    @pytest.mark.asyncio
    async def test_get_alerts_limit_keeps_open_alerts(self, alert):
        """Test a limited read still returns open alerts older than the limit"""
        closed = Alert.open_for(make_rule(id="rule-b"), make_sample(85.0), START)
        closed = closed.resolve("auto", START)
        redis, _ = mock_redis()
        redis.zrevrange = AsyncMock(return_value=[closed.id])
        redis.smembers = AsyncMock(return_value={alert.id})
        redis.mget = AsyncMock(return_value=[closed.model_dump_json(), alert.model_dump_json()])

        alerts = await connected_client(redis).get_alerts(limit=1)

        redis.zrevrange.assert_awaited_once_with("alerts:history", 0, 0)
        redis.mget.assert_awaited_once_with([f"alert:{closed.id}", f"alert:{alert.id}"])
        assert alerts == [closed, alert]


class TestRedisClientRules:
    """Test suite for rule operations"""

    @pytest.mark.asyncio
    async def test_set_and_delete_rule(self):
        """Test rules are stored in the rules hash"""
        redis, _ = mock_redis()
        client = connected_client(redis)
        rule = make_rule()

        await client.set_rule(rule)
        deleted = await client.delete_rule(rule.id)

        redis.hset.assert_awaited_once_with("rules", rule.id, rule.model_dump_json())
        redis.hdel.assert_awaited_once_with("rules", rule.id)
        assert deleted is True

    @pytest.mark.asyncio
    async def test_get_rules_skips_invalid(self):
        """Test invalid rule JSON is logged and skipped"""
        redis, _ = mock_redis()
        rule = make_rule()
        redis.hgetall = AsyncMock(return_value={rule.id: rule.model_dump_json(), "bad": "{}"})

        assert await connected_client(redis).get_rules() == [rule]

    @pytest.mark.asyncio
    async def test_get_rules_failure(self):
        """Test Redis errors are raised as RedisOperationError"""
        redis, _ = mock_redis()
        redis.hgetall = AsyncMock(side_effect=RedisError("down"))

        with pytest.raises(RedisOperationError):
            await connected_client(redis).get_rules()
