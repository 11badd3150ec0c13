"""
Shared Pydantic data models for the monitoring engine.

Modules:
    metrics: Raw and stored metric samples
    alerts: Alert rules, alert instances and lifecycle value objects
    status: Engine status and collection reports

Example:
    >>> from infra_monitor.models import AlertRule, AlertCondition, MetricSample
"""

# Metric models
from infra_monitor.models.metrics import (
    MetricSample,
    RawSample,
    ResourceType,
)

# Alert models
from infra_monitor.models.alerts import (
    Alert,
    AlertCondition,
    AlertHistoryFilter,
    AlertRule,
    AlertSeverity,
    AlertStatus,
    EvaluationResult,
    LifecycleEvent,
    LifecycleTransition,
    RuleState,
)

# Status models
from infra_monitor.models.status import (
    CollectionReport,
    EngineStatus,
)

__all__ = [
    # Metrics
    "ResourceType",
    "RawSample",
    "MetricSample",
    # Alerts
    "AlertCondition",
    "AlertSeverity",
    "AlertStatus",
    "LifecycleEvent",
    "RuleState",
    "AlertRule",
    "Alert",
    "EvaluationResult",
    "LifecycleTransition",
    "AlertHistoryFilter",
    # Status
    "CollectionReport",
    "EngineStatus",
]
