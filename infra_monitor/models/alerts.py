"""
Alert data models for the monitoring engine.

This module defines alert rules, alert instances and the small value
objects exchanged between the evaluator, lifecycle manager and dispatcher.

Models:
    AlertCondition: Comparison operators (gt, lt, eq, gte, lte)
    AlertSeverity: Severity levels (low, medium, high, critical)
    AlertStatus: Alert status (active, acknowledged, resolved)
    LifecycleEvent: Events handed to the dispatcher (triggered, resolved)
    RuleState: Lifecycle state of a rule (none, active, acknowledged)
    AlertRule: Threshold rule configuration
    Alert: One open-or-closed incident for a rule
    EvaluationResult: Outcome of evaluating one rule
    LifecycleTransition: A transition that must be dispatched
    AlertHistoryFilter: Query filter for alert history
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from infra_monitor.models.metrics import MetricSample, require_aware


class AlertCondition(str, Enum):
    """
    Comparison conditions for rule evaluation.

    Attributes:
        GT: Greater than (mean > threshold).
        LT: Less than (mean < threshold).
        EQ: Exactly equal (mean == threshold).
        GTE: Greater than or equal.
        LTE: Less than or equal.
    """

    GT = "gt"
    LT = "lt"
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"

    @property
    def symbol(self) -> str:
        """Operator symbol used in messages."""
        return {
            AlertCondition.GT: ">",
            AlertCondition.LT: "<",
            AlertCondition.EQ: "==",
            AlertCondition.GTE: ">=",
            AlertCondition.LTE: "<=",
        }[self]

    def evaluate(self, value: float, threshold: float) -> bool:
        """
        Evaluate the condition.

        Args:
            value: The aggregated metric value.
            threshold: The threshold to compare against.

        Returns:
            bool: True if condition is met.
        """
        if self == AlertCondition.GT:
            return value > threshold
        elif self == AlertCondition.LT:
            return value < threshold
        elif self == AlertCondition.EQ:
            return value == threshold
        elif self == AlertCondition.GTE:
            return value >= threshold
        elif self == AlertCondition.LTE:
            return value <= threshold
        return False


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    """
    Alert status.

    Attributes:
        ACTIVE: Triggered and not yet acknowledged.
        ACKNOWLEDGED: Seen by an operator, still open.
        RESOLVED: Closed; the condition cleared or the rule was removed.
    """

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"

    @property
    def is_open(self) -> bool:
        """Check if an alert in this status is still open."""
        return self in (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)


class LifecycleEvent(str, Enum):
    """Lifecycle events handed to notification channels."""

    TRIGGERED = "triggered"
    RESOLVED = "resolved"


class RuleState(str, Enum):
    """Lifecycle state of a rule, derived from its open alert."""

    NONE = "none"
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"


class AlertRule(BaseModel):
    """
    Threshold alert rule.

    The rule compares the mean of the most recent samples of `metric_name`
    within `window_minutes` against `threshold`. `last_triggered_at` is
    owned by the lifecycle manager and drives the cooldown.

    Attributes:
        id: Unique rule identifier.
        name: Human-readable name.
        description: What the rule detects.
        metric_name: Metric the rule watches.
        condition: Comparison operator.
        threshold: Threshold value.
        window_minutes: Sliding window length in minutes.
        severity: Severity assigned to alerts from this rule.
        enabled: Whether the rule is evaluated.
        channels: Notification channels, deduplicated.
        cooldown_minutes: Minimum minutes between two triggers.
        last_triggered_at: When the rule last opened an alert.

    Example:
        >>> rule = AlertRule(
        ...     id="high-cpu-usage",
        ...     name="High CPU Usage",
        ...     metric_name="cpu_usage",
        ...     condition=AlertCondition.GT,
        ...     threshold=80,
        ...     window_minutes=5,
        ...     severity=AlertSeverity.HIGH,
        ...     channels=["email", "slack"],
        ...     cooldown_minutes=10,
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(
        ...,
        description="Unique rule identifier",
        min_length=1,
        max_length=100,
    )
    name: str = Field(
        ...,
        description="Human-readable name",
        min_length=1,
        max_length=200,
    )
    description: str = Field(
        default="",
        description="What the rule detects",
    )
    metric_name: str = Field(
        ...,
        description="Metric the rule watches",
        min_length=1,
    )
    condition: AlertCondition = Field(
        ...,
        description="Comparison operator",
    )
    threshold: float = Field(
        ...,
        description="Threshold value",
    )
    window_minutes: int = Field(
        default=5,
        description="Sliding window length in minutes",
        ge=1,
    )
    severity: AlertSeverity = Field(
        default=AlertSeverity.MEDIUM,
        description="Severity assigned to alerts",
    )
    enabled: bool = Field(
        default=True,
        description="Whether the rule is evaluated",
    )
    channels: List[str] = Field(
        default_factory=list,
        description="Notification channel names",
    )
    cooldown_minutes: int = Field(
        default=10,
        description="Minimum minutes between two triggers",
        ge=0,
    )
    last_triggered_at: Optional[datetime] = Field(
        default=None,
        description="When the rule last opened an alert",
    )

    @field_validator("last_triggered_at")
    @classmethod
    def require_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Reject naive trigger times; cooldown arithmetic is in UTC."""
        return require_aware(v)

    @field_validator("channels")
    @classmethod
    def dedupe_channels(cls, v: List[str]) -> List[str]:
        """Drop duplicate channel names, keeping first-seen order."""
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def require_channels_when_enabled(self) -> "AlertRule":
        """An enabled rule must notify somewhere."""
        if self.enabled and not self.channels:
            raise ValueError(f"Enabled rule {self.id} must declare at least one channel")
        return self

    @property
    def window(self) -> timedelta:
        """Sliding window length."""
        return timedelta(minutes=self.window_minutes)

    @property
    def cooldown(self) -> timedelta:
        """Cooldown length."""
        return timedelta(minutes=self.cooldown_minutes)

    def mark_triggered(self, timestamp: datetime) -> "AlertRule":
        """
        Record a trigger.

        Args:
            timestamp: Trigger time.

        Returns:
            AlertRule: Updated rule.
        """
        return self.model_copy(update={"last_triggered_at": timestamp})


class Alert(BaseModel):
    """
    One incident opened by a rule.

    Attributes:
        id: Unique identifier for this alert instance.
        rule_id: Rule that opened the alert.
        rule_name: Rule name at trigger time.
        message: Human-readable message.
        severity: Alert severity.
        status: Current status.
        created_at: When the alert was triggered.
        resolved_at: When the alert was resolved.
        acknowledged_at: When the alert was acknowledged.
        acknowledged_by: Who acknowledged the alert.
        triggering_sample: Most recent sample in the triggering window.
        channels: Channels notified for this alert.
        resolution_type: How the alert was resolved (auto, rule_removed).
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier for this alert instance",
    )
    rule_id: str = Field(
        ...,
        description="Rule that opened the alert",
    )
    rule_name: str = Field(
        ...,
        description="Rule name at trigger time",
    )
    message: str = Field(
        ...,
        description="Human-readable message",
    )
    severity: AlertSeverity = Field(
        ...,
        description="Alert severity",
    )
    status: AlertStatus = Field(
        default=AlertStatus.ACTIVE,
        description="Current status",
    )
    created_at: datetime = Field(
        ...,
        description="When the alert was triggered",
    )
    resolved_at: Optional[datetime] = Field(
        default=None,
        description="When the alert was resolved",
    )
    acknowledged_at: Optional[datetime] = Field(
        default=None,
        description="When the alert was acknowledged",
    )
    acknowledged_by: Optional[str] = Field(
        default=None,
        description="Who acknowledged the alert",
    )
    triggering_sample: MetricSample = Field(
        ...,
        description="Most recent sample in the triggering window",
    )
    channels: List[str] = Field(
        default_factory=list,
        description="Channels notified for this alert",
    )
    resolution_type: Optional[str] = Field(
        default=None,
        description="How the alert was resolved (auto, rule_removed)",
    )

    @field_validator("created_at", "resolved_at", "acknowledged_at")
    @classmethod
    def require_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Reject naive lifecycle timestamps."""
        return require_aware(v)

    @property
    def is_open(self) -> bool:
        """Check if the alert is active or acknowledged."""
        return self.status.is_open

    @property
    def duration_seconds(self) -> Optional[int]:
        """Seconds between trigger and resolution, if resolved."""
        if self.resolved_at is None:
            return None
        return int((self.resolved_at - self.created_at).total_seconds())

    @classmethod
    def open_for(cls, rule: AlertRule, sample: MetricSample, timestamp: datetime) -> "Alert":
        """
        Create a new active alert for a rule.

        Args:
            rule: The rule whose condition was met.
            sample: The representative (most recent) sample.
            timestamp: Trigger time.

        Returns:
            Alert: The new active alert.
        """
        return cls(
            rule_id=rule.id,
            rule_name=rule.name,
            message=f"{rule.name}: {rule.description} (Current: {sample.value}{sample.unit})",
            severity=rule.severity,
            created_at=timestamp,
            triggering_sample=sample,
            channels=list(rule.channels),
        )

    def acknowledge(self, user_id: str, timestamp: datetime) -> "Alert":
        """
        Mark the alert as acknowledged.

        Args:
            user_id: Who acknowledged.
            timestamp: Acknowledgment time.

        Returns:
            Alert: Updated alert with acknowledgment.
        """
        return self.model_copy(
            update={
                "status": AlertStatus.ACKNOWLEDGED,
                "acknowledged_at": timestamp,
                "acknowledged_by": user_id,
            }
        )

    def resolve(self, resolution_type: str, timestamp: datetime) -> "Alert":
        """
        Resolve the alert.

        Args:
            resolution_type: How resolved (auto, rule_removed).
            timestamp: Resolution time.

        Returns:
            Alert: Updated alert with resolution.
        """
        return self.model_copy(
            update={
                "status": AlertStatus.RESOLVED,
                "resolved_at": timestamp,
                "resolution_type": resolution_type,
            }
        )


class EvaluationResult(BaseModel):
    """
    Result of evaluating one rule against its window.

    Attributes:
        rule_id: The rule that was evaluated.
        condition_met: Whether the aggregated value met the condition.
        sample: Most recent sample in the window, if any.
        mean_value: Mean of the window values, if any.
        sample_count: Number of samples aggregated.
        skip_reason: Why evaluation did not compare ("no_data", "rule_disabled").
    """

    model_config = {"frozen": True, "extra": "forbid"}

    rule_id: str
    condition_met: bool
    sample: Optional[MetricSample] = None
    mean_value: Optional[float] = None
    sample_count: int = 0
    skip_reason: Optional[str] = None


class LifecycleTransition(BaseModel):
    """A lifecycle transition to be dispatched."""

    model_config = {"frozen": True, "extra": "forbid"}

    event: LifecycleEvent
    alert: Alert


class AlertHistoryFilter(BaseModel):
    """
    Filter for alert history queries.

    Attributes:
        start: Earliest created_at (inclusive).
        end: Latest created_at (inclusive).
        severity: Only alerts with this severity.
        rule_id: Only alerts of this rule.
        status: Only alerts in this status.
        limit: Maximum number of alerts returned.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    severity: Optional[AlertSeverity] = None
    rule_id: Optional[str] = None
    status: Optional[AlertStatus] = None
    limit: int = Field(default=50, ge=1)

    @field_validator("start", "end")
    @classmethod
    def require_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Reject naive bounds; alert timestamps are UTC-aware."""
        return require_aware(v)

    def matches(self, alert: Alert) -> bool:
        """Check whether an alert passes every set criterion."""
        if self.start is not None and alert.created_at < self.start:
            return False
        if self.end is not None and alert.created_at > self.end:
            return False
        if self.severity is not None and alert.severity != self.severity:
            return False
        if self.rule_id is not None and alert.rule_id != self.rule_id:
            return False
        if self.status is not None and alert.status != self.status:
            return False
        return True
