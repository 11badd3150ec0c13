"""
Alert notification channels.

This module contains implementations for different alert delivery
mechanisms. Every channel exposes `name` and `async send(alert, event)`.

Components:
    console: Structured log output for alerts
    email: SMTP delivery to configured recipients
    slack: Slack incoming-webhook integration
    webhook: Generic HTTP webhook

Example:
    >>> from infra_monitor.detection.channels import ConsoleChannel, SlackChannel
    >>>
    >>> console = ConsoleChannel()
    >>> slack = SlackChannel(webhook_url="https://hooks.slack.com/...")
    >>>
    >>> await console.send(alert, LifecycleEvent.TRIGGERED)
    >>> await slack.send(alert, LifecycleEvent.TRIGGERED)
"""

from infra_monitor.detection.channels.console import ConsoleChannel
from infra_monitor.detection.channels.email import EmailChannel
from infra_monitor.detection.channels.slack import SlackChannel
from infra_monitor.detection.channels.webhook import WebhookChannel

__all__ = [
    "ConsoleChannel",
    "EmailChannel",
    "SlackChannel",
    "WebhookChannel",
]
