"""
Metric collector.

Pulls raw samples per provider, stamps them with the collection time and
appends them to the metric store. Providers are collected concurrently and
in isolation: one provider's failure is logged and reported, never
propagated to the cycle. Retention cleanup runs once all providers finish.

Example:
    >>> collector = MetricCollector(store, source, retention_days=30)
    >>> report = await collector.collect_all(["aws", "azure", "gcp"])
    >>> report.failed_providers
    []
"""

import asyncio
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

import structlog

from infra_monitor.clock import Clock, utc_now
from infra_monitor.exceptions import ProviderCollectionError, StoreWriteError
from infra_monitor.interfaces.metric_source import MetricSource
from infra_monitor.models.metrics import MetricSample
from infra_monitor.models.status import CollectionReport
from infra_monitor.storage.metric_store import MetricStore

logger = structlog.get_logger(__name__)


DEFAULT_RETENTION_DAYS = 30


class MetricCollector:
    """
    Collects provider metrics into the metric store.

    Attributes:
        store: Metric store receiving the samples.
        source: Provider metric source.
        retention: How long samples are kept.
        clock: Time source used to stamp samples.
    """

    def __init__(
        self,
        store: MetricStore,
        source: MetricSource,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.source = source
        self.retention = timedelta(days=retention_days)
        self.clock = clock or utc_now

    async def collect(self, provider: str) -> List[MetricSample]:
        """
        Collect one provider.

        Pulls raw samples, stamps them with the current time and appends
        each to the store. A failed append is logged and skipped; the
        remaining samples are still written.

        Args:
            provider: Provider identifier (e.g., "aws").

        Returns:
            List[MetricSample]: Samples successfully stored.

        Raises:
            ProviderCollectionError: If the provider pull fails.
        """
        try:
            raw_samples = await self.source.pull(provider)
        except Exception as e:
            raise ProviderCollectionError(
                provider,
                f"Pull failed for provider {provider}: {e}",
                cause=e,
            ) from e

        timestamp = self.clock()
        stored: List[MetricSample] = []

        for raw in raw_samples:
            sample = MetricSample.from_raw(provider, raw, timestamp)
            try:
                await self._append(sample)
            except StoreWriteError as e:
                logger.error(
                    "sample_store_failed",
                    provider=provider,
                    metric_name=sample.metric_name,
                    resource_id=sample.resource_id,
                    error=e.message,
                )
                continue
            stored.append(sample)

        logger.debug(
            "provider_collected",
            provider=provider,
            pulled=len(raw_samples),
            stored=len(stored),
        )

        return stored

    async def collect_all(self, providers: Sequence[str]) -> CollectionReport:
        """
        Collect every provider concurrently, then apply retention.

        Args:
            providers: Providers to collect.

        Returns:
            CollectionReport: Per-provider counts and errors.
        """
        results = await asyncio.gather(
            *(self.collect(provider) for provider in providers),
            return_exceptions=True,
        )

        samples_by_provider: Dict[str, int] = {}
        errors_by_provider: Dict[str, str] = {}

        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                errors_by_provider[provider] = str(result)
                logger.error(
                    "provider_collection_failed",
                    provider=provider,
                    error=str(result),
                    error_type=type(result).__name__,
                )
            else:
                samples_by_provider[provider] = len(result)

        report = CollectionReport(
            samples_by_provider=samples_by_provider,
            errors_by_provider=errors_by_provider,
        )

        try:
            report.retention_deleted = await self.cleanup_retention()
        except StoreWriteError as e:
            report.retention_error = e.message
            logger.error("retention_cleanup_failed", error=e.message)

        logger.info(
            "collection_complete",
            providers=len(providers),
            samples=report.total_samples,
            failed_providers=report.failed_providers,
            retention_deleted=report.retention_deleted,
        )

        return report

    async def cleanup_retention(self) -> int:
        """
        Delete samples older than the retention period.

        Returns:
            int: Number of samples deleted.

        Raises:
            StoreWriteError: If the store rejects the delete.
        """
        cutoff = self.clock() - self.retention
        try:
            deleted = await self.store.delete_before(cutoff)
        except StoreWriteError:
            raise
        except Exception as e:
            raise StoreWriteError("delete_before", str(e), cause=e) from e

        if deleted > 0:
            logger.info(
                "old_metrics_cleaned",
                deleted=deleted,
                cutoff=cutoff.isoformat(),
            )
        return deleted

    async def _append(self, sample: MetricSample) -> None:
        """Append a sample, normalizing backend failures to StoreWriteError."""
        try:
            await self.store.append(sample)
        except StoreWriteError:
            raise
        except Exception as e:
            raise StoreWriteError("append", str(e), cause=e) from e
