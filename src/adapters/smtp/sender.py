"""
SMTP email sender adapter - Implements EmailSender protocol.

Sends plain-text messages through an SMTP relay, either over implicit TLS
(SMTPS, port 465) or plain SMTP upgraded with STARTTLS. Delivery errors are
logged and reported as False; they never raise into the domain.
"""

import logging
import smtplib
from email.message import EmailMessage

from src.config.settings import Settings

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """
    Implements EmailSender protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    A new SMTP session is opened per message.
    """

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: str = "",
        password: str = "",
        use_ssl: bool = True,
        use_tls: bool = False,
        timeout: float = 15.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from_address = from_address
        self._username = username
        self._password = password
        self._use_ssl = use_ssl
        self._use_tls = use_tls
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpEmailSender":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.smtp_from_email,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_ssl=settings.smtp_use_ssl,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout,
        )

    def _build_message(self, to_address: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._from_address
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, to_address: str, subject: str, body: str) -> bool:
        if not self._host:
            logger.warning("SMTP host not configured; skipping email to %s", to_address)
            return False

        msg = self._build_message(to_address, subject, body)
        try:
            if self._use_ssl:
                with smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout) as server:
                    if self._username:
                        server.login(self._username, self._password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                    if self._use_tls:
                        server.starttls()
                    if self._username:
                        server.login(self._username, self._password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery failed (%s -> %s): %s", self._host, to_address, exc)
            return False

        logger.info("Sent email to %s with subject '%s'", to_address, subject)
        return True
