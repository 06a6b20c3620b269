"""Outgoing e-mail through Django's configured mail backend.

Sending is a side effect of other actions, so failures are logged and
reported through the return value instead of raised.
"""

from __future__ import annotations

import logging
import smtplib
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, html: str, from_email: Optional[str] = None) -> bool:
    """Send one HTML message to ``to``; return whether the backend accepted it."""

    sender = from_email or settings.DEFAULT_FROM_EMAIL
    try:
        sent = send_mail(
            subject,
            strip_tags(html),
            sender,
            [to],
            html_message=html,
        )
    except (smtplib.SMTPException, OSError):
        logger.warning("Sending e-mail '%s' to %s failed", subject, to, exc_info=True)
        return False
    logger.info("Sent e-mail '%s' to %s", subject, to)
    return bool(sent)
