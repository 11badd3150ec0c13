"""
Generic HTTP webhook channel.

POSTs the alert as JSON together with the lifecycle event. Any non-2xx
response is treated as a delivery failure.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import structlog

from infra_monitor.models.alerts import Alert, LifecycleEvent

logger = structlog.get_logger(__name__)


class WebhookChannel:
    """
    HTTP webhook channel.

    Attributes:
        name: Channel name used in rule channel lists.
        url: Target URL.
        headers: Extra HTTP headers sent with every request.
        timeout_seconds: HTTP timeout.

    Example:
        >>> channel = WebhookChannel(
        ...     url="https://ops.example.com/hooks/alerts",
        ...     headers={"Authorization": "Bearer ..."},
        ... )
        >>> await channel.send(alert, LifecycleEvent.RESOLVED)
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.url = url
        self.headers = dict(headers or {})
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

    @staticmethod
    def build_payload(alert: Alert, event: LifecycleEvent) -> Dict[str, Any]:
        """Alert JSON plus the lifecycle event."""
        return {
            "event": event.value,
            "alert": alert.model_dump(mode="json"),
        }

    async def send(self, alert: Alert, event: LifecycleEvent) -> None:
        """
        POST the notification.

        Raises:
            ConnectionError: If the request fails or the response is non-2xx.
        """
        session = await self._ensure_session()

        try:
            async with session.post(
                self.url,
                json=self.build_payload(alert, event),
                headers=self.headers,
            ) as response:
                if not 200 <= response.status < 300:
                    error_text = await response.text()
                    raise ConnectionError(
                        f"Webhook returned status {response.status}: {error_text}"
                    )
        except aiohttp.ClientError as e:
            raise ConnectionError(f"Webhook request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ConnectionError(f"Webhook timeout after {self.timeout_seconds}s") from e

        logger.debug(
            "webhook_notification_sent",
            alert_id=alert.id,
            lifecycle_event=event.value,
            url=self.url,
        )
