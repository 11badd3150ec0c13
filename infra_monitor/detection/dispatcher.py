"""
Channel dispatcher for routing alert notifications.

This module provides the ChannelDispatcher class which fans a lifecycle
event out to every channel listed on the alert.

Key Features:
    - Concurrent delivery to all of an alert's channels
    - Per-channel isolation: a failing channel never affects the others
      or the alert state
    - Unknown channel names are logged and skipped
    - Factory building channels from ChannelsConfig

Example:
    >>> dispatcher = ChannelDispatcher(
    ...     channels={"console": ConsoleChannel(), "slack": slack_channel},
    ... )
    >>> await dispatcher.dispatch(alert, LifecycleEvent.TRIGGERED)
"""

import asyncio
from typing import Dict, List, Protocol

import structlog

from infra_monitor.config.models import ChannelsConfig
from infra_monitor.exceptions import NotificationDeliveryError
from infra_monitor.models.alerts import Alert, LifecycleEvent

logger = structlog.get_logger(__name__)


class AlertChannel(Protocol):
    """
    Protocol for alert notification channels.

    Any channel implementation must support this async method.
    """

    async def send(self, alert: Alert, event: LifecycleEvent) -> None:
        """Deliver a lifecycle event for an alert."""
        ...


class ChannelDispatcher:
    """
    Routes lifecycle events to notification channels.

    Attributes:
        channels: Dict mapping channel name to channel instance.

    Example:
        >>> dispatcher = ChannelDispatcher(channels={"console": ConsoleChannel()})
        >>> count = await dispatcher.dispatch(alert, LifecycleEvent.RESOLVED)
    """

    def __init__(self, channels: Dict[str, AlertChannel]) -> None:
        """
        Initialize the channel dispatcher.

        Args:
            channels: Dict mapping channel name to channel instance.
        """
        self.channels = channels

        logger.info(
            "channel_dispatcher_initialized",
            available_channels=list(channels.keys()),
        )

    async def dispatch(self, alert: Alert, event: LifecycleEvent) -> int:
        """
        Dispatch a lifecycle event to every channel of the alert.

        Args:
            alert: The alert (as of the transition).
            event: Triggered or resolved.

        Returns:
            int: Number of channels that accepted the notification.

        Example:
            >>> count = await dispatcher.dispatch(alert, LifecycleEvent.TRIGGERED)
            >>> print(f"Dispatched to {count} channels")
        """
        targets: List[str] = []
        for channel_name in alert.channels:
            if channel_name not in self.channels:
                logger.warning(
                    "channel_not_found",
                    channel_name=channel_name,
                    alert_id=alert.id,
                )
                continue
            targets.append(channel_name)

        results = await asyncio.gather(
            *(self._send_one(name, alert, event) for name in targets)
        )
        dispatched_count = sum(1 for ok in results if ok)

        logger.info(
            "alert_dispatch_complete",
            alert_id=alert.id,
            lifecycle_event=event.value,
            dispatched_to=dispatched_count,
            total_channels=len(alert.channels),
        )

        return dispatched_count

    async def _send_one(self, channel_name: str, alert: Alert, event: LifecycleEvent) -> bool:
        channel = self.channels[channel_name]
        try:
            await channel.send(alert, event)
        except Exception as e:
            failure = NotificationDeliveryError(channel_name, alert.id, cause=e)
            logger.error(
                "channel_send_failed",
                channel=channel_name,
                alert_id=alert.id,
                lifecycle_event=event.value,
                error=failure.message,
                error_type=type(e).__name__,
            )
            return False

        logger.debug(
            "alert_dispatched_to_channel",
            channel=channel_name,
            alert_id=alert.id,
            lifecycle_event=event.value,
        )
        return True

    def add_channel(self, name: str, channel: AlertChannel) -> None:
        """
        Register a channel under a name.

        Args:
            name: Channel name.
            channel: Channel instance.
        """
        self.channels[name] = channel
        logger.info("channel_added", channel_name=name)

    def remove_channel(self, name: str) -> bool:
        """
        Remove a channel.

        Returns:
            bool: True if channel was removed, False if not found.
        """
        if name in self.channels:
            del self.channels[name]
            logger.info("channel_removed", channel_name=name)
            return True
        return False

    def get_available_channels(self) -> List[str]:
        """Names of registered channels."""
        return list(self.channels.keys())

    async def close(self) -> None:
        """Close channels holding network resources."""
        for channel in self.channels.values():
            close = getattr(channel, "close", None)
            if close is not None:
                await close()


def create_dispatcher(channels_config: ChannelsConfig) -> ChannelDispatcher:
    """
    Factory function to create a ChannelDispatcher from configuration.

    Only enabled channels are registered.

    Args:
        channels_config: Channel settings.

    Returns:
        ChannelDispatcher: Configured dispatcher instance.

    Example:
        >>> dispatcher = create_dispatcher(config.channels)
        >>> dispatcher.get_available_channels()
        ['console', 'slack']
    """
    from infra_monitor.detection.channels import (
        ConsoleChannel,
        EmailChannel,
        SlackChannel,
        WebhookChannel,
    )

    channels: Dict[str, AlertChannel] = {}

    if channels_config.console.enabled:
        channels["console"] = ConsoleChannel()

    email = channels_config.email
    if email.enabled:
        channels["email"] = EmailChannel(
            smtp_host=email.smtp_host,
            smtp_port=email.smtp_port,
            use_tls=email.use_tls,
            username=email.username,
            password=email.password,
            from_address=email.from_address,
            recipients=email.recipients,
            timeout_seconds=email.timeout_seconds,
        )

    slack = channels_config.slack
    if slack.enabled and slack.webhook_url:
        channels["slack"] = SlackChannel(
            webhook_url=slack.webhook_url,
            channel=slack.channel,
            username=slack.username,
            timeout_seconds=slack.timeout_seconds,
        )

    webhook = channels_config.webhook
    if webhook.enabled and webhook.url:
        channels["webhook"] = WebhookChannel(
            url=webhook.url,
            headers=webhook.headers,
            timeout_seconds=webhook.timeout_seconds,
        )

    return ChannelDispatcher(channels=channels)
