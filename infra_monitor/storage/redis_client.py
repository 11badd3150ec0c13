"""
Async Redis client for durable engine state.

This module provides a Redis client for storing metric samples, alert
records and alert rules so that the engine survives restarts.

Key Patterns:
    - Metrics: `metrics:{metric_name}` (sorted set scored by epoch timestamp,
               members are sample JSON), `metrics:names` (set of metric names)
    - Alerts: `alert:{alert_id}` (JSON string), `alerts:open` (set),
              `alerts:history` (sorted set scored by created_at)
    - Rules: `rules` (hash of rule id to rule JSON)

Example:
    >>> from infra_monitor.config.models import RedisConnectionConfig
    >>> from infra_monitor.storage.redis_client import RedisClient
    >>>
    >>> client = RedisClient(RedisConnectionConfig(url="redis://localhost:6379"))
    >>> await client.connect()
    >>> await client.append_sample(sample)
    >>> samples = await client.query_samples("cpu_usage", start, end, limit=10)
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from infra_monitor.config.models import RedisConnectionConfig
from infra_monitor.models.alerts import Alert, AlertRule
from infra_monitor.models.metrics import MetricSample

logger = structlog.get_logger(__name__)


class RedisClientError(Exception):
    """Base exception for Redis client errors."""

    pass


class RedisConnectionException(RedisClientError):
    """Raised when Redis connection fails."""

    pass


class RedisOperationError(RedisClientError):
    """Raised when a Redis operation fails."""

    pass


class RedisClient:
    """
    Async Redis client for metrics, alerts and rules.

    Attributes:
        config: Redis connection configuration.
        _pool: Connection pool for efficient connection reuse.
        _client: Redis client instance.
        _connected: Whether the client is connected.

    Example:
        >>> client = RedisClient(RedisConnectionConfig())
        >>> await client.connect()
        >>> try:
        ...     await client.set_alert(alert)
        ... finally:
        ...     await client.disconnect()
    """

    # Key prefixes
    KEY_METRICS = "metrics"
    KEY_METRIC_NAMES = "metrics:names"
    KEY_ALERT = "alert"
    KEY_ALERTS_OPEN = "alerts:open"
    KEY_ALERTS_HISTORY = "alerts:history"
    KEY_RULES = "rules"

    def __init__(self, config: RedisConnectionConfig) -> None:
        """
        Initialize the Redis client.

        Args:
            config: Redis connection configuration containing URL, db, and pool settings.
        """
        self.config = config
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None  # type: ignore[type-arg]
        self._connected: bool = False

        logger.info(
            "redis_client_initialized",
            url=config.url,
            db=config.db,
            max_connections=config.max_connections,
        )

    @property
    def is_connected(self) -> bool:
        """Check if the client is connected to Redis."""
        return self._connected and self._client is not None

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Raises:
            RedisConnectionException: If connection fails.
        """
        if self._connected:
            logger.warning("redis_already_connected")
            return

        try:
            self._pool = ConnectionPool.from_url(
                self.config.url,
                db=self.config.db,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_timeout,
                decode_responses=True,
            )
            self._client = Redis(connection_pool=self._pool)

            # Verify connection with ping
            await self._client.ping()
            self._connected = True

            logger.info(
                "redis_connected",
                url=self.config.url,
                db=self.config.db,
            )

        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            self._connected = False
            logger.error(
                "redis_connection_failed",
                url=self.config.url,
                error=str(e),
            )
            raise RedisConnectionException(
                f"Failed to connect to Redis at {self.config.url}: {e}"
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and release resources.

        Safe to call multiple times.
        """
        if self._client is not None:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.warning("redis_close_error", error=str(e))
            finally:
                self._client = None

        if self._pool is not None:
            try:
                await self._pool.aclose()
            except RedisError as e:
                logger.warning("redis_pool_close_error", error=str(e))
            finally:
                self._pool = None

        self._connected = False
        logger.info("redis_disconnected")

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            bool: True if Redis responds to PING, False otherwise.
        """
        if not self._client:
            return False

        try:
            await self._client.ping()
            return True
        except RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    def _require_connection(self) -> Redis:  # type: ignore[type-arg]
        """
        Ensure client is connected and return the Redis instance.

        Raises:
            RedisConnectionException: If not connected.
        """
        if not self._connected or self._client is None:
            raise RedisConnectionException("Redis client is not connected")
        return self._client

    # =========================================================================
    # METRIC SAMPLES
    # =========================================================================

    def _metric_key(self, metric_name: str) -> str:
        """Generate Redis key for a metric's sorted set."""
        return f"{self.KEY_METRICS}:{metric_name}"

    async def append_sample(self, sample: MetricSample) -> None:
        """
        Append a sample to its metric's sorted set.

        Args:
            sample: The sample to store.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.zadd(
                    self._metric_key(sample.metric_name),
                    {sample.model_dump_json(): sample.timestamp.timestamp()},
                )
                pipe.sadd(self.KEY_METRIC_NAMES, sample.metric_name)
                await pipe.execute()

        except RedisError as e:
            logger.error(
                "sample_store_failed",
                metric_name=sample.metric_name,
                provider=sample.provider,
                error=str(e),
            )
            raise RedisOperationError(
                f"Failed to store sample for {sample.metric_name}: {e}"
            ) from e

    async def query_samples(
        self,
        metric_name: str,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
        descending: bool = True,
    ) -> List[MetricSample]:
        """
        Query samples of one metric within [start, end].

        Args:
            metric_name: Metric to query.
            start: Earliest timestamp (inclusive).
            end: Latest timestamp (inclusive).
            limit: Maximum number of samples, None for all.
            descending: Newest first when True.

        Returns:
            List[MetricSample]: Matching samples in the requested order.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()
        key = self._metric_key(metric_name)
        low, high = start.timestamp(), end.timestamp()
        paging = {"start": 0, "num": limit} if limit is not None else {}

        try:
            if descending:
                members = await client.zrevrangebyscore(key, high, low, **paging)
            else:
                members = await client.zrangebyscore(key, low, high, **paging)

            return [MetricSample.model_validate_json(m) for m in members]

        except RedisError as e:
            logger.error(
                "sample_query_failed",
                metric_name=metric_name,
                error=str(e),
            )
            raise RedisOperationError(
                f"Failed to query samples for {metric_name}: {e}"
            ) from e

    async def delete_samples_before(self, cutoff: datetime) -> int:
        """
        Delete every sample strictly older than cutoff.

        Args:
            cutoff: Samples with timestamp < cutoff are removed.

        Returns:
            int: Number of samples deleted.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            names = await client.smembers(self.KEY_METRIC_NAMES)
            if not names:
                return 0

            async with client.pipeline(transaction=False) as pipe:
                for name in sorted(names):
                    # "(" makes the upper bound exclusive
                    pipe.zremrangebyscore(
                        self._metric_key(name), "-inf", f"({cutoff.timestamp()}"
                    )
                removed = await pipe.execute()

            return int(sum(removed))

        except RedisError as e:
            logger.error("sample_cleanup_failed", cutoff=cutoff.isoformat(), error=str(e))
            raise RedisOperationError(f"Failed to delete samples before {cutoff}: {e}") from e

    # =========================================================================
    # ALERTS
    # =========================================================================

    def _alert_key(self, alert_id: str) -> str:
        """Generate Redis key for an alert."""
        return f"{self.KEY_ALERT}:{alert_id}"

    async def set_alert(self, alert: Alert) -> None:
        """
        Store an alert in Redis with index maintenance.

        Open alerts are added to `alerts:open`; resolved alerts are removed
        from it. Every alert is indexed in `alerts:history`.

        Args:
            alert: The Alert to store.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.set(self._alert_key(alert.id), alert.model_dump_json())
                pipe.zadd(self.KEY_ALERTS_HISTORY, {alert.id: alert.created_at.timestamp()})
                if alert.is_open:
                    pipe.sadd(self.KEY_ALERTS_OPEN, alert.id)
                else:
                    pipe.srem(self.KEY_ALERTS_OPEN, alert.id)
                await pipe.execute()

            logger.debug(
                "alert_stored",
                alert_id=alert.id,
                rule_id=alert.rule_id,
                status=alert.status.value,
            )

        except RedisError as e:
            logger.error(
                "alert_store_failed",
                alert_id=alert.id,
                error=str(e),
            )
            raise RedisOperationError(f"Failed to store alert {alert.id}: {e}") from e

    async def get_alerts(self, limit: Optional[int] = None) -> List[Alert]:
        """
        Retrieve stored alerts: history newest first, then any open alert
        outside the limit.

        Args:
            limit: Maximum history entries read, None for all. Open alerts
                are always included.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()
        stop = -1 if limit is None else limit - 1

        try:
            history_ids = await client.zrevrange(self.KEY_ALERTS_HISTORY, 0, stop)
            open_ids = await client.smembers(self.KEY_ALERTS_OPEN)
            alert_ids = list(dict.fromkeys([*history_ids, *sorted(open_ids)]))
            if not alert_ids:
                return []

            values = await client.mget([self._alert_key(aid) for aid in alert_ids])

            alerts: List[Alert] = []
            for data in values:
                if data is None:
                    continue
                try:
                    alerts.append(Alert.model_validate_json(data))
                except ValueError as e:
                    logger.warning("alert_parse_failed", error=str(e))

            return alerts

        except RedisError as e:
            logger.error("alerts_retrieve_failed", error=str(e))
            raise RedisOperationError(f"Failed to retrieve alerts: {e}") from e

    # =========================================================================
    # RULES
    # =========================================================================

    async def set_rule(self, rule: AlertRule) -> None:
        """
        Store or replace an alert rule.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            await client.hset(self.KEY_RULES, rule.id, rule.model_dump_json())
        except RedisError as e:
            logger.error("rule_store_failed", rule_id=rule.id, error=str(e))
            raise RedisOperationError(f"Failed to store rule {rule.id}: {e}") from e

    async def delete_rule(self, rule_id: str) -> bool:
        """
        Delete an alert rule.

        Returns:
            bool: True if the rule existed.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            return bool(await client.hdel(self.KEY_RULES, rule_id))
        except RedisError as e:
            logger.error("rule_delete_failed", rule_id=rule_id, error=str(e))
            raise RedisOperationError(f"Failed to delete rule {rule_id}: {e}") from e

    async def get_rules(self) -> List[AlertRule]:
        """
        Retrieve every stored alert rule.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the operation fails.
        """
        client = self._require_connection()

        try:
            raw = await client.hgetall(self.KEY_RULES)
        except RedisError as e:
            logger.error("rules_retrieve_failed", error=str(e))
            raise RedisOperationError(f"Failed to retrieve rules: {e}") from e

        rules: List[AlertRule] = []
        for rule_id, data in raw.items():
            try:
                rules.append(AlertRule.model_validate_json(data))
            except ValueError as e:
                logger.warning("rule_parse_failed", rule_id=rule_id, error=str(e))
        return rules
