"""
Operator alert sinks.

The poller only needs a ``send(recipients, subject, body)`` capability;
delivery is an external collaborator. Two sinks are provided:
- SmtpAlertSink: submits the alert to an SMTP relay (the county Exchange
  relay in production)
- LogAlertSink: writes the alert to the structured log when no relay is
  configured
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import Protocol, Sequence

import structlog

from ..errors import NotificationError

logger = structlog.get_logger(__name__)


class AlertSink(Protocol):
    """Anything that can deliver an alert to a list of operators."""

    def send(self, recipients: Sequence[str], subject: str, body: str) -> None: ...


class SmtpAlertSink:
    """Deliver alerts through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        sender: str = 'hotcalls.poller@localhost',
        username: str | None = None,
        password: str | None = None,
        starttls: bool = False,
        timeout_seconds: int = 30,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout_seconds = timeout_seconds

    def build_message(self, recipients: Sequence[str], subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message['From'] = self.sender
        message['To'] = ', '.join(recipients)
        message['Subject'] = subject
        message.set_content(body)
        return message

    def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        """
        Send one alert message.

        Raises:
            NotificationError: If the relay refuses the message or cannot be reached
        """
        if not recipients:
            logger.warning('alert.no_recipients', subject=subject)
            return

        message = self.build_message(recipients, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or '')
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(
                f"Alert delivery failed: {exc}",
                context={'host': self.host, 'port': self.port, 'error_type': type(exc).__name__},
            ) from exc

        logger.info('alert.sent', subject=subject, recipients=len(recipients))


class LogAlertSink:
    """Fallback sink: record the alert in the structured log only."""

    def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        logger.error('alert.logged', subject=subject, body=body, recipients=list(recipients))
