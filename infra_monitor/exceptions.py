"""
Error taxonomy for the monitoring engine.

Per-provider, per-sample, per-rule and per-channel failures are logged and
isolated by the component that catches them. Only AcknowledgeNotFoundError
and RuleNotFoundError are surfaced to callers of the public engine API.

Exceptions:
    MonitoringError: Base class for all engine errors.
    ProviderCollectionError: A provider's pull failed.
    StoreWriteError: A store append/delete/persist operation failed.
    NotificationDeliveryError: A single channel failed to deliver.
    AcknowledgeNotFoundError: No active alert matches an acknowledge call.
    RuleNotFoundError: No rule is registered under the given id.
"""

from typing import Optional


class MonitoringError(Exception):
    """
    Base exception for monitoring engine errors.

    Attributes:
        message: Error message describing what went wrong.
        cause: Original exception that caused the error, if any.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class ProviderCollectionError(MonitoringError):
    """Raised when pulling samples from one provider fails."""

    def __init__(
        self,
        provider: str,
        message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        self.provider = provider
        super().__init__(
            message or f"Metric collection failed for provider {provider}",
            cause=cause,
        )


class StoreWriteError(MonitoringError):
    """Raised when a write to the metric, alert or rule store fails."""

    def __init__(
        self,
        operation: str,
        message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        super().__init__(message or f"Store operation {operation} failed", cause=cause)


class NotificationDeliveryError(MonitoringError):
    """Raised when one notification channel fails to deliver."""

    def __init__(
        self,
        channel: str,
        alert_id: str,
        cause: Optional[Exception] = None,
    ) -> None:
        self.channel = channel
        self.alert_id = alert_id
        super().__init__(
            f"Delivery of alert {alert_id} to channel {channel} failed: {cause}",
            cause=cause,
        )


class AcknowledgeNotFoundError(MonitoringError):
    """Raised when acknowledge targets an unknown or non-active alert."""

    def __init__(self, alert_id: str) -> None:
        self.alert_id = alert_id
        super().__init__(f"Alert not found or not active: {alert_id}")


class RuleNotFoundError(MonitoringError):
    """Raised when a rule id is not registered."""

    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Alert rule not found: {rule_id}")
