"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging OTP messages to stdout for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints OTP messages to stdout.
    """

    def send(self, to_address: str, subject: str, body: str) -> bool:
        """
        Log the message to console (simulates email delivery).

        The message is logged at INFO level to be visible in docker-compose logs.

        Args:
            to_address: Recipient email address
            subject: Message subject line
            body: Plain-text message body, containing the OTP

        Returns:
            Always True
        """
        logger.info("[EMAIL] To: %s Subject: %s Body: %s", to_address, subject, body)
        return True
