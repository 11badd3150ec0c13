"""
Tests for the rule registry.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import START, make_rule
from infra_monitor.detection.registry import RedisRuleRepository, RuleRegistry
from infra_monitor.exceptions import RuleNotFoundError, StoreWriteError
from infra_monitor.storage.redis_client import RedisOperationError


class TestRuleRegistry:
    """Test suite for RuleRegistry"""

    @pytest.mark.asyncio
    async def test_upsert_list_and_get(self):
        """Test upserted rules are listed and retrievable"""
        registry = RuleRegistry()
        await registry.upsert(make_rule())
        await registry.upsert(make_rule(id="low-cpu", enabled=False, channels=[]))

        assert {r.id for r in registry.list()} == {"high-cpu-usage", "low-cpu"}
        assert [r.id for r in registry.list_enabled()] == ["high-cpu-usage"]
        assert registry.get("low-cpu").enabled is False

    def test_get_unknown_raises(self):
        """Test get raises RuleNotFoundError for unknown ids"""
        registry = RuleRegistry()

        with pytest.raises(RuleNotFoundError):
            registry.get("missing")

    @pytest.mark.asyncio
    async def test_remove(self):
        """Test remove reports whether the rule existed"""
        registry = RuleRegistry([make_rule()])

        assert await registry.remove("high-cpu-usage") is True
        assert await registry.remove("high-cpu-usage") is False
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_upsert_keeps_existing_trigger_time(self):
        """Test configuration edits do not reset the cooldown"""
        registry = RuleRegistry([make_rule()])
        await registry.mark_triggered("high-cpu-usage", START)

        stored = await registry.upsert(make_rule(threshold=90))

        assert stored.threshold == 90
        assert stored.last_triggered_at == START

    @pytest.mark.asyncio
    async def test_upsert_accepts_explicit_trigger_time(self):
        """Test an incoming trigger time replaces the stored one"""
        registry = RuleRegistry([make_rule()])
        await registry.mark_triggered("high-cpu-usage", START)
        later = START + timedelta(hours=1)

        stored = await registry.upsert(make_rule(last_triggered_at=later))

        assert stored.last_triggered_at == later

    @pytest.mark.asyncio
    async def test_mark_triggered_unknown_rule(self):
        """Test mark_triggered on a removed rule is a no-op"""
        registry = RuleRegistry()

        assert await registry.mark_triggered("missing", START) is None

    @pytest.mark.asyncio
    async def test_concurrent_upserts_all_applied(self):
        """Test concurrent writes are serialized without losing updates"""
        registry = RuleRegistry()

        await asyncio.gather(*(registry.upsert(make_rule(id=f"rule-{i}")) for i in range(20)))

        assert len(registry) == 20

    @pytest.mark.asyncio
    async def test_list_is_a_snapshot(self):
        """Test mutating the returned list does not touch the registry"""
        registry = RuleRegistry([make_rule()])

        rules = registry.list()
        rules.clear()

        assert len(registry) == 1


class TestRuleRegistryPersistence:
    """Test suite for registry write-through"""

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.set_rule = AsyncMock()
        client.delete_rule = AsyncMock(return_value=True)
        client.get_rules = AsyncMock(return_value=[])
        return client

    @pytest.mark.asyncio
    async def test_upsert_writes_through(self, redis_client):
        """Test upsert persists the stored rule"""
        registry = RuleRegistry(repository=RedisRuleRepository(redis_client))

        rule = await registry.upsert(make_rule())

        redis_client.set_rule.assert_awaited_once_with(rule)

    @pytest.mark.asyncio
    async def test_write_through_failure_after_memory_change(self, redis_client):
        """Test a persistence failure raises but the rule is still registered"""
        redis_client.set_rule.side_effect = RedisOperationError("down")
        registry = RuleRegistry(repository=RedisRuleRepository(redis_client))

        with pytest.raises(StoreWriteError):
            await registry.upsert(make_rule())

        assert registry.get("high-cpu-usage").threshold == 80

    @pytest.mark.asyncio
    async def test_load_replaces_configured_rules(self, redis_client):
        """Test load brings persisted rules in over configured ones"""
        redis_client.get_rules.return_value = [make_rule(threshold=95, last_triggered_at=START)]
        registry = RuleRegistry([make_rule()], repository=RedisRuleRepository(redis_client))

        loaded = await registry.load()

        assert loaded == 1
        assert registry.get("high-cpu-usage").threshold == 95
        assert registry.get("high-cpu-usage").last_triggered_at == START

    @pytest.mark.asyncio
    async def test_remove_deletes_persisted_rule(self, redis_client):
        """Test remove deletes the rule from the repository"""
        registry = RuleRegistry([make_rule()], repository=RedisRuleRepository(redis_client))

        await registry.remove("high-cpu-usage")

        redis_client.delete_rule.assert_awaited_once_with("high-cpu-usage")
