"""
OTP email templates and dispatch.

Both flows share the body template; only the subject tells signup and
password recovery apart.
"""

import logging
from datetime import timedelta

from .exceptions import EmailDeliveryFailed
from .ports import EmailSender, PendingPurpose

logger = logging.getLogger(__name__)

SUBJECTS = {
    PendingPurpose.SIGNUP: "Your OTP Code for Signup Verification",
    PendingPurpose.RESET: "Your OTP Code for password recovery",
}

BODY_TEMPLATE = "Your OTP code is: {otp}. It expires in {minutes} minutes."


def render_otp_body(otp: str, ttl: timedelta) -> str:
    return BODY_TEMPLATE.format(otp=otp, minutes=int(ttl.total_seconds() // 60))


def send_otp_email(
    sender: EmailSender, email: str, otp: str, purpose: PendingPurpose, ttl: timedelta
) -> None:
    """
    Send the purpose-specific OTP message.

    Raises:
        EmailDeliveryFailed: If the sender reports the message was not sent
    """
    delivered = sender.send(email, SUBJECTS[purpose], render_otp_body(otp, ttl))
    if not delivered:
        logger.warning("OTP email (%s) to %s was not delivered", purpose.value, email)
        raise EmailDeliveryFailed(email)
