"""
Rule registry for alert rules.

This module provides the RuleRegistry class, the single source of truth for
alert rule definitions. It is read by the evaluator on every cycle and
mutated by the configuration API and by the lifecycle manager (trigger
timestamps).

Key Features:
    - In-memory rule table keyed by rule id
    - Writes serialized by an asyncio lock; reads return snapshots
    - Optional Redis write-through via RedisRuleRepository
    - Configuration edits keep an existing trigger timestamp

Example:
    >>> registry = RuleRegistry()
    >>> await registry.upsert(rule)
    >>> enabled = registry.list_enabled()
"""

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import structlog

from infra_monitor.exceptions import RuleNotFoundError, StoreWriteError
from infra_monitor.models.alerts import AlertRule
from infra_monitor.storage.redis_client import RedisClient, RedisClientError

logger = structlog.get_logger(__name__)


class RedisRuleRepository:
    """
    Rule persistence on Redis.

    Adapts RedisClient rule operations and maps Redis errors to
    StoreWriteError.

    Attributes:
        redis_client: Connected Redis client.
    """

    def __init__(self, redis_client: RedisClient) -> None:
        self.redis_client = redis_client

    async def save(self, rule: AlertRule) -> None:
        try:
            await self.redis_client.set_rule(rule)
        except RedisClientError as e:
            raise StoreWriteError("save_rule", str(e), cause=e) from e

    async def delete(self, rule_id: str) -> None:
        try:
            await self.redis_client.delete_rule(rule_id)
        except RedisClientError as e:
            raise StoreWriteError("delete_rule", str(e), cause=e) from e

    async def load_all(self) -> List[AlertRule]:
        try:
            return await self.redis_client.get_rules()
        except RedisClientError as e:
            raise StoreWriteError("load_rules", str(e), cause=e) from e


class RuleRegistry:
    """
    Registry of alert rules.

    Mutations (upsert, remove, mark_triggered, load) take the registry lock,
    so concurrent configuration calls and trigger updates never interleave.
    Reads copy the current table without locking.

    Attributes:
        repository: Optional persistence backend.

    Example:
        >>> registry = RuleRegistry(repository=RedisRuleRepository(redis_client))
        >>> await registry.load()
        >>> await registry.upsert(rule)
        >>> registry.get("high-cpu-usage")
    """

    def __init__(
        self,
        rules: Optional[Iterable[AlertRule]] = None,
        repository: Optional[RedisRuleRepository] = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            rules: Initial rules (e.g., from configuration).
            repository: Optional persistence backend for write-through.
        """
        self._rules: Dict[str, AlertRule] = {}
        self._lock = asyncio.Lock()
        self.repository = repository

        for rule in rules or []:
            self._rules[rule.id] = rule

        logger.debug(
            "rule_registry_initialized",
            rule_count=len(self._rules),
            persistent=repository is not None,
        )

    async def upsert(self, rule: AlertRule) -> AlertRule:
        """
        Insert or replace a rule.

        If the stored rule has a trigger timestamp and the incoming rule
        does not, the stored timestamp is kept.

        Args:
            rule: The rule to store.

        Returns:
            AlertRule: The rule as stored.

        Raises:
            StoreWriteError: If write-through fails. The in-memory change
                has already been applied.
        """
        async with self._lock:
            existing = self._rules.get(rule.id)
            if (
                existing is not None
                and existing.last_triggered_at is not None
                and rule.last_triggered_at is None
            ):
                rule = rule.mark_triggered(existing.last_triggered_at)

            self._rules[rule.id] = rule

            logger.info(
                "rule_upserted",
                rule_id=rule.id,
                metric_name=rule.metric_name,
                enabled=rule.enabled,
                created=existing is None,
            )

            await self._persist_save(rule)

        return rule

    async def remove(self, rule_id: str) -> bool:
        """
        Remove a rule.

        Args:
            rule_id: The rule identifier.

        Returns:
            bool: True if the rule existed.

        Raises:
            StoreWriteError: If write-through fails.
        """
        async with self._lock:
            removed = self._rules.pop(rule_id, None)
            if removed is None:
                return False

            logger.info("rule_removed", rule_id=rule_id)

            if self.repository is not None:
                try:
                    await self.repository.delete(rule_id)
                except StoreWriteError as e:
                    logger.error("rule_delete_persist_failed", rule_id=rule_id, error=e.message)
                    raise

        return True

    async def mark_triggered(self, rule_id: str, timestamp: datetime) -> Optional[AlertRule]:
        """
        Record that a rule opened an alert.

        Args:
            rule_id: The rule identifier.
            timestamp: Trigger time.

        Returns:
            Optional[AlertRule]: The updated rule, or None if the rule was
                removed in the meantime.

        Raises:
            StoreWriteError: If write-through fails.
        """
        async with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                return None

            updated = rule.mark_triggered(timestamp)
            self._rules[rule_id] = updated
            await self._persist_save(updated)

        return updated

    async def load(self) -> int:
        """
        Load persisted rules, replacing in-memory rules with the same id.

        Returns:
            int: Number of rules loaded.

        Raises:
            StoreWriteError: If the repository read fails.
        """
        if self.repository is None:
            return 0

        rules = await self.repository.load_all()

        async with self._lock:
            for rule in rules:
                self._rules[rule.id] = rule

        logger.info("rules_loaded", count=len(rules))
        return len(rules)

    def get(self, rule_id: str) -> AlertRule:
        """
        Get a rule by id.

        Raises:
            RuleNotFoundError: If no rule has this id.
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def find(self, rule_id: str) -> Optional[AlertRule]:
        """Get a rule by id, or None."""
        return self._rules.get(rule_id)

    def list(self) -> List[AlertRule]:
        """Snapshot of all rules."""
        return list(self._rules.values())

    def list_enabled(self) -> List[AlertRule]:
        """Snapshot of enabled rules."""
        return [rule for rule in self._rules.values() if rule.enabled]

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    async def _persist_save(self, rule: AlertRule) -> None:
        if self.repository is None:
            return
        try:
            await self.repository.save(rule)
        except StoreWriteError as e:
            logger.error("rule_persist_failed", rule_id=rule.id, error=e.message)
            raise
