"""
Shared fixtures for monitoring engine tests.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from infra_monitor.models.alerts import (
    Alert,
    AlertCondition,
    AlertRule,
    AlertSeverity,
    LifecycleEvent,
)
from infra_monitor.models.metrics import MetricSample, ResourceType


START = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock; call it to read, advance() to move forward."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingChannel:
    """Channel that records every send, optionally failing."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: List[Tuple[Alert, LifecycleEvent]] = []

    async def send(self, alert: Alert, event: LifecycleEvent) -> None:
        if self.fail:
            raise ConnectionError("channel unavailable")
        self.sent.append((alert, event))


def make_rule(**overrides) -> AlertRule:
    """Build a cpu_usage > 80 rule with overridable fields."""
    fields = dict(
        id="high-cpu-usage",
        name="High CPU Usage",
        description="CPU usage exceeds 80%",
        metric_name="cpu_usage",
        condition=AlertCondition.GT,
        threshold=80,
        window_minutes=5,
        severity=AlertSeverity.HIGH,
        channels=["console"],
        cooldown_minutes=10,
    )
    fields.update(overrides)
    return AlertRule(**fields)


def make_sample(
    value: float,
    timestamp: datetime = START,
    metric_name: str = "cpu_usage",
    provider: str = "aws",
    resource_id: Optional[str] = None,
) -> MetricSample:
    """Build a stored sample."""
    return MetricSample(
        provider=provider,
        resource_type=ResourceType.COMPUTE,
        resource_id=resource_id or f"{provider}-instance-1",
        metric_name=metric_name,
        value=value,
        unit="percent",
        timestamp=timestamp,
        tags={"environment": "production"},
    )


@pytest.fixture
def clock():
    """Fake clock starting at START."""
    return FakeClock()


@pytest.fixture
def rule():
    """Default cpu_usage rule."""
    return make_rule()
