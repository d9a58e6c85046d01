"""Report delivery via SMTP."""
import asyncio
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)


class ReportDeliveryError(Exception):
    """Raised when a report could not be delivered."""


@dataclass
class SMTPConfig:
    """SMTP configuration for sending reports."""
    host: str
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True
    from_address: str = ""
    timeout: float = 30


class Mailer(ABC):
    """Delivers a rendered report to one recipient."""

    @abstractmethod
    async def deliver(self, recipient: str, subject: str, body_html: str) -> None:
        """
        Deliver a report.

        Raises:
            ReportDeliveryError: If delivery failed
        """


class SMTPMailer(Mailer):
    """Sends HTML reports through an SMTP server."""

    def __init__(self, config: Optional[SMTPConfig]):
        self.config = config

    def _build_message(self, recipient: str, subject: str, body_html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.config.from_address or self.config.username
        msg["To"] = recipient
        msg.attach(MIMEText(body_html, "html"))
        return msg

    async def deliver(self, recipient: str, subject: str, body_html: str) -> None:
        if not self.config or not self.config.host:
            raise ReportDeliveryError("SMTP is not configured")

        logger.info(f"Sending report to {recipient}: {subject}")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._send_sync, recipient, subject, body_html)
        logger.info(f"Report sent to {recipient}")

    def _send_sync(self, recipient: str, subject: str, body_html: str) -> None:
        config = self.config
        msg = self._build_message(recipient, subject, body_html)
        from_addr = config.from_address or config.username

        try:
            with smtplib.SMTP(config.host, config.port, timeout=config.timeout) as server:
                if config.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if config.username and config.password:
                    server.login(config.username, config.password)
                server.sendmail(from_addr, [recipient], msg.as_string())

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{config.username}': {e}")
            raise ReportDeliveryError(f"SMTP authentication failed: {e}") from e
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"Recipient refused by server: {e}")
            raise ReportDeliveryError(f"Recipient refused: {recipient}") from e
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
            raise ReportDeliveryError(f"SMTP error: {e}") from e
        except OSError as e:
            logger.error(f"Failed to connect to SMTP server {config.host}:{config.port}: {e}")
            raise ReportDeliveryError(f"Cannot connect to {config.host}:{config.port}: {e}") from e
