"""
Abstract base class for provider metric sources.

A metric source pulls the current raw samples for one cloud provider.
Concrete sources wrap a provider's monitoring API (CloudWatch, Azure
Monitor, Cloud Monitoring); the collector only depends on this contract,
so any source can be substituted without touching other components.

Example:
    >>> class CloudWatchSource(MetricSource):
    ...     async def pull(self, provider: str) -> List[RawSample]:
    ...         datapoints = await self._client.get_metric_data(...)
    ...         return [self._normalize(dp) for dp in datapoints]
"""

from abc import ABC, abstractmethod
from typing import List

from infra_monitor.models.metrics import RawSample


class MetricSource(ABC):
    """
    Abstract base class for provider metric sources.

    The source is responsible for:
    - Calling the provider API for the current metric values
    - Converting provider-specific payloads to RawSample
    - Raising on any failure; the collector isolates and logs it
    """

    @abstractmethod
    async def pull(self, provider: str) -> List[RawSample]:
        """
        Pull the current raw samples for a provider.

        Args:
            provider: Provider identifier (e.g., "aws").

        Returns:
            List[RawSample]: Samples for every (metric, resource) polled.

        Raises:
            Exception: Any failure; the collector wraps it in
                ProviderCollectionError.
        """
        pass

    async def close(self) -> None:
        """Release client resources. Safe to call multiple times."""
        return None
