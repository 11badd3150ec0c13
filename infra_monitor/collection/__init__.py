"""
Metric collection.

Components:
    collector: MetricCollector pulling providers into the metric store
    simulated: SimulatedMetricSource for development and demos
"""

from infra_monitor.collection.collector import DEFAULT_RETENTION_DAYS, MetricCollector
from infra_monitor.collection.simulated import (
    DEFAULT_METRIC_TYPES,
    MetricType,
    SimulatedMetricSource,
)

__all__ = [
    "MetricCollector",
    "DEFAULT_RETENTION_DAYS",
    "SimulatedMetricSource",
    "MetricType",
    "DEFAULT_METRIC_TYPES",
]
