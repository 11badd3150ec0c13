"""
Simulated metric source.

Generates one sample per known metric type with a uniformly random value
in that type's range. Used in development and demos in place of real
cloud provider API calls.
"""

import random
from typing import List, NamedTuple, Optional

from infra_monitor.interfaces.metric_source import MetricSource
from infra_monitor.models.metrics import RawSample, ResourceType


class MetricType(NamedTuple):
    """Name, unit and value range of a simulated metric."""

    name: str
    unit: str
    min_value: float
    max_value: float


DEFAULT_METRIC_TYPES: List[MetricType] = [
    MetricType("cpu_usage", "percent", 10, 95),
    MetricType("memory_usage", "percent", 20, 90),
    MetricType("network_in", "bytes", 1000, 1_000_000),
    MetricType("network_out", "bytes", 1000, 1_000_000),
    MetricType("disk_read", "bytes", 0, 100_000),
    MetricType("disk_write", "bytes", 0, 100_000),
    MetricType("error_rate", "percent", 0, 10),
    MetricType("response_time", "milliseconds", 50, 5000),
    MetricType("availability", "percent", 95, 100),
]


class SimulatedMetricSource(MetricSource):
    """
    Random-value metric source.

    Attributes:
        metric_types: Metrics emitted on every pull.
        instances_per_provider: Resource ids are drawn from 1..N.

    Example:
        >>> source = SimulatedMetricSource(seed=42)
        >>> samples = await source.pull("aws")
        >>> len(samples)
        9
    """

    def __init__(
        self,
        metric_types: Optional[List[MetricType]] = None,
        instances_per_provider: int = 10,
        seed: Optional[int] = None,
    ) -> None:
        self.metric_types = metric_types or DEFAULT_METRIC_TYPES
        self.instances_per_provider = instances_per_provider
        self._random = random.Random(seed)

    async def pull(self, provider: str) -> List[RawSample]:
        samples: List[RawSample] = []

        for metric_type in self.metric_types:
            value = self._random.uniform(metric_type.min_value, metric_type.max_value)
            instance = self._random.randint(1, self.instances_per_provider)

            samples.append(
                RawSample(
                    resource_type=ResourceType.COMPUTE,
                    resource_id=f"{provider}-instance-{instance}",
                    metric_name=metric_type.name,
                    value=round(value, 2),
                    unit=metric_type.unit,
                    tags={
                        "environment": "production",
                        "region": f"{provider}-us-east-1",
                    },
                )
            )

        return samples
