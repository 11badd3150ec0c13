"""
SMTP email channel for alert notifications.

smtplib is blocking, so each send runs in a worker thread.

Example:
    >>> channel = EmailChannel(
    ...     smtp_host="smtp.example.com",
    ...     from_address="alerts@example.com",
    ...     recipients=["oncall@example.com"],
    ... )
    >>> await channel.send(alert, LifecycleEvent.TRIGGERED)
"""

import asyncio
import smtplib
import ssl
from email.mime.text import MIMEText
from email.utils import formatdate
from typing import List, Optional

import structlog

from infra_monitor.models.alerts import Alert, LifecycleEvent

logger = structlog.get_logger(__name__)


class EmailChannel:
    """
    SMTP notification channel.

    Attributes:
        name: Channel name used in rule channel lists.
        smtp_host: SMTP server host.
        smtp_port: SMTP server port.
        use_tls: Whether to upgrade with STARTTLS.
        from_address: Sender address.
        recipients: Recipient addresses.
    """

    name = "email"

    def __init__(
        self,
        smtp_host: str,
        from_address: str,
        recipients: List[str],
        smtp_port: int = 587,
        use_tls: bool = True,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.use_tls = use_tls
        self.username = username
        self.password = password
        self.from_address = from_address
        self.recipients = list(recipients)
        self.timeout_seconds = timeout_seconds

    def build_message(self, alert: Alert, event: LifecycleEvent) -> MIMEText:
        """
        Build the plaintext email for a notification.

        Args:
            alert: The alert to notify about.
            event: Triggered or resolved.

        Returns:
            MIMEText: Ready-to-send message.
        """
        sample = alert.triggering_sample
        if event == LifecycleEvent.RESOLVED:
            subject = f"[RESOLVED] {alert.rule_name}"
        else:
            subject = f"[{alert.severity.value.upper()}] {alert.rule_name}"

        lines = [
            alert.message,
            "",
            f"Metric: {sample.metric_name}",
            f"Value: {sample.value}{sample.unit}",
            f"Resource: {sample.resource_id} ({sample.provider})",
            f"Triggered at: {alert.created_at.isoformat()}",
        ]
        if alert.resolved_at is not None:
            lines.append(f"Resolved at: {alert.resolved_at.isoformat()}")
        lines.extend(["", f"Alert ID: {alert.id}", f"Rule ID: {alert.rule_id}"])

        msg = MIMEText("\n".join(lines), "plain", "utf-8")
        msg["From"] = self.from_address
        msg["To"] = ", ".join(self.recipients)
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        return msg

    def _send_sync(self, msg: MIMEText) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout_seconds) as server:
            server.ehlo()
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
                server.ehlo()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, self.recipients, msg.as_string())

    async def send(self, alert: Alert, event: LifecycleEvent) -> None:
        """
        Send the notification email.

        Raises:
            smtplib.SMTPException: If the SMTP exchange fails.
            OSError: If the server cannot be reached.
        """
        msg = self.build_message(alert, event)
        await asyncio.to_thread(self._send_sync, msg)

        logger.debug(
            "email_notification_sent",
            alert_id=alert.id,
            lifecycle_event=event.value,
            recipients=len(self.recipients),
        )
