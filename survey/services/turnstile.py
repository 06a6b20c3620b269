"""Cloudflare Turnstile bot check used by the signup form."""

from __future__ import annotations

import logging
from typing import Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


def client_ip(request) -> Optional[str]:
    """First address of ``X-Forwarded-For``, falling back to ``REMOTE_ADDR``."""

    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.META.get('REMOTE_ADDR') or None


def verify_turnstile(token: Optional[str], remote_ip: Optional[str] = None) -> bool:
    """Return True when the challenge token is valid.

    The check is disabled (always True) while ``TURNSTILE_SECRET_KEY`` is
    empty.  A missing token or a failed verification call returns False.
    """

    secret = settings.TURNSTILE_SECRET_KEY
    if not secret:
        return True
    if not token:
        return False
    form = {'secret': secret, 'response': token}
    if remote_ip:
        form['remoteip'] = remote_ip
    try:
        response = requests.post(
            settings.TURNSTILE_VERIFY_URL,
            data=form,
            timeout=settings.EXTERNAL_HTTP_TIMEOUT,
        )
        response.raise_for_status()
        return bool(response.json().get('success'))
    except (requests.RequestException, ValueError, AttributeError):
        logger.warning("Turnstile verification failed", exc_info=True)
        return False
