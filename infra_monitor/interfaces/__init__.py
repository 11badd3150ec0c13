"""
Abstract interfaces for external collaborators.

Components:
    metric_source: MetricSource ABC for provider metric pulls
"""

from infra_monitor.interfaces.metric_source import MetricSource

__all__: list[str] = [
    "MetricSource",
]
