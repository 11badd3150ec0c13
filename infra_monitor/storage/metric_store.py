"""
Metric store contract and backends.

The engine only calls the three operations of the MetricStore protocol:
append, range query and delete-before. Backend failures surface as
StoreWriteError for writes; query failures propagate to the caller, which
decides whether the rule or cycle is skipped.

Components:
    MetricStore: Protocol every backend implements
    InMemoryMetricStore: Process-local store (development and tests)
    RedisMetricStore: Durable store backed by RedisClient sorted sets

Example:
    >>> store = InMemoryMetricStore()
    >>> await store.append(sample)
    >>> recent = await store.query("cpu_usage", start, end, limit=10)
"""

import asyncio
from datetime import datetime
from typing import List, Optional, Protocol

import structlog

from infra_monitor.exceptions import StoreWriteError
from infra_monitor.models.metrics import MetricSample
from infra_monitor.storage.redis_client import RedisClient, RedisClientError

logger = structlog.get_logger(__name__)


class MetricStore(Protocol):
    """
    Protocol for time-series metric stores.

    Any store implementation must support these async methods.
    """

    async def append(self, sample: MetricSample) -> None:
        """Append one sample."""
        ...

    async def query(
        self,
        metric_name: str,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
        descending: bool = True,
        provider: Optional[str] = None,
    ) -> List[MetricSample]:
        """Return samples of metric_name with start <= timestamp <= end."""
        ...

    async def delete_before(self, cutoff: datetime) -> int:
        """Delete samples with timestamp < cutoff, returning the count."""
        ...


class InMemoryMetricStore:
    """
    List-backed metric store.

    Suitable for development and tests. All operations are serialized by
    an asyncio lock so concurrent provider tasks can append safely.

    Example:
        >>> store = InMemoryMetricStore()
        >>> await store.append(sample)
        >>> len(store)
        1
    """

    def __init__(self) -> None:
        self._samples: List[MetricSample] = []
        self._lock = asyncio.Lock()

    async def append(self, sample: MetricSample) -> None:
        async with self._lock:
            self._samples.append(sample)

    async def query(
        self,
        metric_name: str,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
        descending: bool = True,
        provider: Optional[str] = None,
    ) -> List[MetricSample]:
        async with self._lock:
            matches = [
                s
                for s in self._samples
                if s.metric_name == metric_name
                and start <= s.timestamp <= end
                and (provider is None or s.provider == provider)
            ]

        matches.sort(key=lambda s: s.timestamp, reverse=descending)
        if limit is not None:
            matches = matches[:limit]
        return matches

    async def delete_before(self, cutoff: datetime) -> int:
        async with self._lock:
            kept = [s for s in self._samples if s.timestamp >= cutoff]
            deleted = len(self._samples) - len(kept)
            self._samples = kept
        return deleted

    def __len__(self) -> int:
        return len(self._samples)


class RedisMetricStore:
    """
    Metric store backed by Redis sorted sets.

    Attributes:
        redis_client: Connected RedisClient.

    Example:
        >>> store = RedisMetricStore(redis_client)
        >>> await store.append(sample)
    """

    def __init__(self, redis_client: RedisClient) -> None:
        self.redis_client = redis_client

    async def append(self, sample: MetricSample) -> None:
        """
        Append one sample.

        Raises:
            StoreWriteError: If Redis rejects the write.
        """
        try:
            await self.redis_client.append_sample(sample)
        except RedisClientError as e:
            raise StoreWriteError("append", str(e), cause=e) from e

    async def query(
        self,
        metric_name: str,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
        descending: bool = True,
        provider: Optional[str] = None,
    ) -> List[MetricSample]:
        """
        Query samples in [start, end].

        Provider filtering happens client-side, so the limit is applied
        after filtering.
        """
        if provider is None:
            return await self.redis_client.query_samples(
                metric_name, start, end, limit=limit, descending=descending
            )

        samples = await self.redis_client.query_samples(
            metric_name, start, end, limit=None, descending=descending
        )
        samples = [s for s in samples if s.provider == provider]
        return samples[:limit] if limit is not None else samples

    async def delete_before(self, cutoff: datetime) -> int:
        """
        Delete samples older than cutoff.

        Raises:
            StoreWriteError: If Redis rejects the delete.
        """
        try:
            return await self.redis_client.delete_samples_before(cutoff)
        except RedisClientError as e:
            raise StoreWriteError("delete_before", str(e), cause=e) from e
