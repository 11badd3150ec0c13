"""
Slack channel for alert notifications.

Posts alerts to a Slack incoming webhook as an attachment colored by
severity. The aiohttp session is created lazily and reused.

Example:
    >>> channel = SlackChannel(webhook_url="https://hooks.slack.com/services/...")
    >>> await channel.send(alert, LifecycleEvent.TRIGGERED)
    >>> await channel.close()
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import structlog

from infra_monitor.models.alerts import Alert, AlertSeverity, LifecycleEvent

logger = structlog.get_logger(__name__)


SEVERITY_COLORS: Dict[AlertSeverity, str] = {
    AlertSeverity.LOW: "#439FE0",
    AlertSeverity.MEDIUM: "#FFC107",
    AlertSeverity.HIGH: "#FF9800",
    AlertSeverity.CRITICAL: "#FF1744",
}

RESOLVED_COLOR = "#36A64F"


class SlackChannel:
    """
    Slack incoming-webhook channel.

    Attributes:
        name: Channel name used in rule channel lists.
        webhook_url: Slack webhook URL.
        channel: Target Slack channel.
        username: Bot username shown in Slack.
        timeout_seconds: HTTP timeout.
    """

    name = "slack"

    def __init__(
        self,
        webhook_url: str,
        channel: str = "#alerts",
        username: str = "infra-monitor",
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.timeout_seconds = timeout_seconds
        self._session = session

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def build_payload(self, alert: Alert, event: LifecycleEvent) -> Dict[str, Any]:
        """
        Build the Slack webhook payload.

        Args:
            alert: The alert to notify about.
            event: Triggered or resolved.

        Returns:
            Dict[str, Any]: JSON-serializable payload.
        """
        sample = alert.triggering_sample
        if event == LifecycleEvent.RESOLVED:
            title = f"RESOLVED: {alert.rule_name}"
            color = RESOLVED_COLOR
        else:
            title = f"[{alert.severity.value.upper()}] {alert.rule_name}"
            color = SEVERITY_COLORS[alert.severity]

        fields = [
            {"title": "Metric", "value": sample.metric_name, "short": True},
            {"title": "Value", "value": f"{sample.value}{sample.unit}", "short": True},
            {"title": "Resource", "value": sample.resource_id, "short": True},
            {"title": "Provider", "value": sample.provider, "short": True},
        ]
        if event == LifecycleEvent.RESOLVED and alert.duration_seconds is not None:
            fields.append(
                {"title": "Duration", "value": f"{alert.duration_seconds}s", "short": True}
            )

        return {
            "channel": self.channel,
            "username": self.username,
            "attachments": [
                {
                    "color": color,
                    "title": title,
                    "text": alert.message,
                    "fields": fields,
                    "footer": f"alert {alert.id}",
                    "ts": int(alert.created_at.timestamp()),
                }
            ],
        }

    async def send(self, alert: Alert, event: LifecycleEvent) -> None:
        """
        Post the notification to Slack.

        Raises:
            ConnectionError: If the request fails or Slack answers non-2xx.
        """
        session = await self._ensure_session()
        payload = self.build_payload(alert, event)

        try:
            async with session.post(self.webhook_url, json=payload) as response:
                if response.status >= 300:
                    error_text = await response.text()
                    raise ConnectionError(
                        f"Slack webhook returned status {response.status}: {error_text}"
                    )
        except aiohttp.ClientError as e:
            raise ConnectionError(f"Slack webhook request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ConnectionError(
                f"Slack webhook timeout after {self.timeout_seconds}s"
            ) from e

        logger.debug(
            "slack_notification_sent",
            alert_id=alert.id,
            lifecycle_event=event.value,
            channel=self.channel,
        )
