"""
Tests for notification channels.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import START, make_rule, make_sample
from infra_monitor.detection.channels import (
    ConsoleChannel,
    EmailChannel,
    SlackChannel,
    WebhookChannel,
)
from infra_monitor.models import Alert, AlertSeverity, LifecycleEvent


def make_alert(**rule_overrides):
    return Alert.open_for(make_rule(**rule_overrides), make_sample(85.0), START)


def mock_session(status=200, body="ok"):
    """aiohttp-like session whose post() is an async context manager."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=body)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    session.post = MagicMock(return_value=context)
    session.close = AsyncMock()
    return session


class TestConsoleChannel:
    """Test suite for ConsoleChannel"""

    @pytest.mark.asyncio
    async def test_send_logs_without_error(self):
        """Test console sends for both lifecycle events"""
        channel = ConsoleChannel()
        alert = make_alert(severity=AlertSeverity.CRITICAL)

        await channel.send(alert, LifecycleEvent.TRIGGERED)
        await channel.send(alert.resolve("auto", START), LifecycleEvent.RESOLVED)


class TestSlackChannel:
    """Test suite for SlackChannel"""

    @pytest.mark.asyncio
    async def test_send_posts_payload(self):
        """Test the webhook receives a severity-colored attachment"""
        session = mock_session()
        channel = SlackChannel(webhook_url="https://hooks.slack.com/x", channel="#ops", session=session)
        alert = make_alert()

        await channel.send(alert, LifecycleEvent.TRIGGERED)

        session.post.assert_called_once()
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "https://hooks.slack.com/x"
        assert payload["channel"] == "#ops"
        assert payload["attachments"][0]["title"] == "[HIGH] High CPU Usage"
        assert payload["attachments"][0]["text"] == alert.message

    def test_resolved_payload(self):
        """Test resolution payloads are marked resolved"""
        channel = SlackChannel(webhook_url="https://hooks.slack.com/x")
        alert = make_alert().resolve("auto", START)

        payload = channel.build_payload(alert, LifecycleEvent.RESOLVED)

        assert payload["attachments"][0]["title"] == "RESOLVED: High CPU Usage"
        assert payload["attachments"][0]["color"] == "#36A64F"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        """Test a non-2xx response is a delivery failure"""
        channel = SlackChannel(
            webhook_url="https://hooks.slack.com/x", session=mock_session(status=404, body="no_service")
        )

        with pytest.raises(ConnectionError, match="404"):
            await channel.send(make_alert(), LifecycleEvent.TRIGGERED)


class TestWebhookChannel:
    """Test suite for WebhookChannel"""

    @pytest.mark.asyncio
    async def test_send_posts_alert_json(self):
        """Test the alert JSON and event are posted with headers"""
        session = mock_session(status=202)
        channel = WebhookChannel(
            url="https://hooks.example.com/a", headers={"X-Token": "t"}, session=session
        )
        alert = make_alert()

        await channel.send(alert, LifecycleEvent.TRIGGERED)

        kwargs = session.post.call_args.kwargs
        assert kwargs["headers"] == {"X-Token": "t"}
        assert kwargs["json"]["event"] == "triggered"
        assert kwargs["json"]["alert"]["id"] == alert.id
        assert kwargs["json"]["alert"]["severity"] == "high"

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        """Test a 5xx response is a delivery failure"""
        channel = WebhookChannel(url="https://hooks.example.com/a", session=mock_session(status=500))

        with pytest.raises(ConnectionError):
            await channel.send(make_alert(), LifecycleEvent.RESOLVED)

    @pytest.mark.asyncio
    async def test_close_closes_session(self):
        """Test close releases the session"""
        session = mock_session()
        channel = WebhookChannel(url="https://hooks.example.com/a", session=session)

        await channel.close()

        session.close.assert_awaited_once()


class TestEmailChannel:
    """Test suite for EmailChannel"""

    @pytest.fixture
    def channel(self):
        return EmailChannel(
            smtp_host="smtp.example.com",
            smtp_port=587,
            from_address="alerts@example.com",
            recipients=["oncall@example.com", "sre@example.com"],
            username="user",
            password="secret",
        )

    def test_build_message(self, channel):
        """Test subject and body content"""
        alert = make_alert(severity=AlertSeverity.CRITICAL)

        msg = channel.build_message(alert, LifecycleEvent.TRIGGERED)

        assert msg["Subject"] == "[CRITICAL] High CPU Usage"
        assert msg["To"] == "oncall@example.com, sre@example.com"
        assert alert.id in msg.get_payload(decode=True).decode("utf-8")

    @pytest.mark.asyncio
    async def test_send_uses_smtp(self, channel):
        """Test send logs in and delivers to every recipient"""
        with patch("infra_monitor.detection.channels.email.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value

            await channel.send(make_alert(), LifecycleEvent.TRIGGERED)

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "secret")
        sender, recipients, _ = server.sendmail.call_args.args
        assert sender == "alerts@example.com"
        assert recipients == ["oncall@example.com", "sre@example.com"]

    @pytest.mark.asyncio
    async def test_send_propagates_smtp_failure(self, channel):
        """Test SMTP errors propagate to the dispatcher"""
        with patch("infra_monitor.detection.channels.email.smtplib.SMTP") as mock_smtp:
            mock_smtp.side_effect = OSError("connection refused")

            with pytest.raises(OSError):
                await channel.send(make_alert(), LifecycleEvent.TRIGGERED)
