"""
Metric sample models.

Models:
    ResourceType: Kind of cloud resource a sample describes
    RawSample: Sample as returned by a provider source, before stamping
    MetricSample: Immutable, timestamped sample stored in the metric store
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


def require_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Reject naive datetimes; every engine timestamp is UTC-aware."""
    if value is not None and value.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return value


class ResourceType(str, Enum):
    """
    Cloud resource categories.

    Attributes:
        COMPUTE: Virtual machines, containers, functions.
        STORAGE: Object and block storage.
        NETWORK: Load balancers, gateways, links.
        DATABASE: Managed database instances.
    """

    COMPUTE = "compute"
    STORAGE = "storage"
    NETWORK = "network"
    DATABASE = "database"


class RawSample(BaseModel):
    """
    A sample as produced by a provider source.

    The collector ignores any timestamp on a raw sample and stamps the
    collection time instead.

    Attributes:
        resource_type: Kind of resource measured.
        resource_id: Provider-specific resource identifier.
        metric_name: Metric name (e.g., "cpu_usage").
        value: Measured value.
        unit: Unit of the value (e.g., "percent").
        timestamp: Provider-side timestamp, if any.
        tags: Free-form string labels.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    resource_type: ResourceType = Field(
        default=ResourceType.COMPUTE,
        description="Kind of resource measured",
    )
    resource_id: str = Field(
        ...,
        description="Provider-specific resource identifier",
        min_length=1,
    )
    metric_name: str = Field(
        ...,
        description="Metric name",
        min_length=1,
    )
    value: float = Field(
        ...,
        description="Measured value",
    )
    unit: str = Field(
        default="",
        description="Unit of the value",
    )
    timestamp: Optional[datetime] = Field(
        default=None,
        description="Provider-side timestamp (ignored by the collector)",
    )
    tags: Dict[str, str] = Field(
        default_factory=dict,
        description="Free-form string labels",
    )


class MetricSample(BaseModel):
    """
    Immutable metric fact written by the collector.

    Created once per poll per (provider, metric, resource) and never
    mutated. Removed by retention cleanup once older than the retention
    period.

    Attributes:
        provider: Cloud provider identifier (e.g., "aws").
        resource_type: Kind of resource measured.
        resource_id: Provider-specific resource identifier.
        metric_name: Metric name (e.g., "cpu_usage").
        value: Measured value.
        unit: Unit of the value.
        timestamp: Collection time (timezone-aware UTC).
        tags: Free-form string labels.

    Example:
        >>> sample = MetricSample(
        ...     provider="aws",
        ...     resource_type=ResourceType.COMPUTE,
        ...     resource_id="aws-instance-3",
        ...     metric_name="cpu_usage",
        ...     value=85.2,
        ...     unit="percent",
        ...     timestamp=datetime.now(timezone.utc),
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    provider: str = Field(
        ...,
        description="Cloud provider identifier",
        min_length=1,
    )
    resource_type: ResourceType = Field(
        ...,
        description="Kind of resource measured",
    )
    resource_id: str = Field(
        ...,
        description="Provider-specific resource identifier",
    )
    metric_name: str = Field(
        ...,
        description="Metric name",
        min_length=1,
    )
    value: float = Field(
        ...,
        description="Measured value",
    )
    unit: str = Field(
        default="",
        description="Unit of the value",
    )
    timestamp: datetime = Field(
        ...,
        description="Collection time",
    )
    tags: Dict[str, str] = Field(
        default_factory=dict,
        description="Free-form string labels",
    )

    @field_validator("timestamp")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        """Reject naive timestamps so window arithmetic stays in UTC."""
        return require_aware(v)

    @classmethod
    def from_raw(cls, provider: str, raw: RawSample, timestamp: datetime) -> "MetricSample":
        """
        Build a stored sample from a provider's raw sample.

        Args:
            provider: Provider the raw sample came from.
            raw: The raw sample.
            timestamp: Collection time to stamp.

        Returns:
            MetricSample: The normalized sample.
        """
        return cls(
            provider=provider,
            resource_type=raw.resource_type,
            resource_id=raw.resource_id,
            metric_name=raw.metric_name,
            value=raw.value,
            unit=raw.unit,
            timestamp=timestamp,
            tags=dict(raw.tags),
        )
