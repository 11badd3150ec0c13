"""
Console channel for alert notifications.

Emits one structured log line per notification. Triggered alerts are
logged at warning level (error for critical severity); resolutions at info.

Example:
    >>> channel = ConsoleChannel()
    >>> await channel.send(alert, LifecycleEvent.TRIGGERED)
"""

import structlog

from infra_monitor.models.alerts import Alert, AlertSeverity, LifecycleEvent

logger = structlog.get_logger(__name__)


class ConsoleChannel:
    """
    Log-based notification channel.

    Attributes:
        name: Channel name used in rule channel lists.
    """

    name = "console"

    async def send(self, alert: Alert, event: LifecycleEvent) -> None:
        fields = {
            "alert_id": alert.id,
            "rule_id": alert.rule_id,
            "severity": alert.severity.value,
            "status": alert.status.value,
            "message": alert.message,
            "metric_name": alert.triggering_sample.metric_name,
            "value": alert.triggering_sample.value,
            "resource_id": alert.triggering_sample.resource_id,
            "provider": alert.triggering_sample.provider,
        }

        if event == LifecycleEvent.RESOLVED:
            logger.info(
                "alert_notification_resolved",
                resolution_type=alert.resolution_type,
                duration_seconds=alert.duration_seconds,
                **fields,
            )
        elif alert.severity == AlertSeverity.CRITICAL:
            logger.error("alert_notification_triggered", **fields)
        else:
            logger.warning("alert_notification_triggered", **fields)
