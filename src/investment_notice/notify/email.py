"""SMTP delivery of rendered reports."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Protocol, Sequence, runtime_checkable

from investment_notice.core.config import NotifyConfig
from investment_notice.core.exceptions import NotifyError

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Delivers a rendered report. Raises ``NotifyError`` on failure."""

    async def send(
        self,
        rendered: str,
        recipients: Sequence[str],
        subject: str,
    ) -> None: ...


class EmailNotifier:
    """Sends plain-text reports over SMTP.

    Port 465 (or ``use_ssl``) uses implicit TLS; any other port upgrades
    with STARTTLS. The blocking ``smtplib`` session runs in a worker thread.
    """

    def __init__(self, config: NotifyConfig) -> None:
        self._config = config

    @property
    def default_recipients(self) -> list[str]:
        return list(self._config.to_emails)

    async def send(
        self,
        rendered: str,
        recipients: Sequence[str],
        subject: str,
    ) -> None:
        recipients = list(recipients)
        if not recipients:
            raise NotifyError(
                "No recipient email addresses configured",
                context={"recipients": []},
            )

        sender = self._config.from_email or self._config.username
        if not sender or not self._config.username or not self._config.password:
            raise NotifyError(
                "SMTP credentials not configured (SMTP_USERNAME, SMTP_PASSWORD, FROM_EMAIL)",
                context={"recipients": recipients},
            )

        msg = MIMEText(rendered, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = ", ".join(recipients)

        logger.info("Preparing to send email to %d recipients", len(recipients))
        try:
            await asyncio.to_thread(self._deliver, msg, sender, recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email: %s", e)
            raise NotifyError(
                f"Email sending failed: {e}",
                context={"recipients": recipients, "smtp_server": self._config.smtp_server},
            ) from e

        logger.info("Email sent successfully: %s", subject)

    def _deliver(self, msg: MIMEText, sender: str, recipients: list[str]) -> None:
        cfg = self._config
        if cfg.use_ssl or cfg.smtp_port == 465:
            server = smtplib.SMTP_SSL(cfg.smtp_server, cfg.smtp_port, timeout=cfg.timeout_seconds)
        else:
            server = smtplib.SMTP(cfg.smtp_server, cfg.smtp_port, timeout=cfg.timeout_seconds)

        with server:
            if not (cfg.use_ssl or cfg.smtp_port == 465):
                server.starttls()
            server.login(cfg.username, cfg.password)
            server.send_message(msg, from_addr=sender, to_addrs=recipients)
