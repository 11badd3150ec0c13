"""
Storage for the monitoring engine.

Components:
    redis_client: Async Redis client for samples, alerts and rules
    metric_store: MetricStore protocol with in-memory and Redis backends
"""

from infra_monitor.storage.redis_client import (
    RedisClient,
    RedisClientError,
    RedisConnectionException,
    RedisOperationError,
)
from infra_monitor.storage.metric_store import (
    InMemoryMetricStore,
    MetricStore,
    RedisMetricStore,
)

__all__: list[str] = [
    # Redis
    "RedisClient",
    "RedisClientError",
    "RedisConnectionException",
    "RedisOperationError",
    # Metric store
    "MetricStore",
    "InMemoryMetricStore",
    "RedisMetricStore",
]
