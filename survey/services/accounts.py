"""Account lifecycle: seller signup and password reset.

Sellers sign up themselves; platform accounts are promoted with the
``update_user_role`` management command.  E-mail addresses are stored in
lower case and double as the Django username.

Password reset tokens are random URL-safe strings.  Only their sha256 digest
is stored, each token works once and expires after
``PASSWORD_RESET_TTL_MINUTES``.  Requesting a reset always succeeds so the
form cannot be used to find out which addresses hold an account.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional
from urllib.parse import quote

from django.conf import settings
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..models import PasswordResetToken, Profile
from .email import send_email
from .rate_limit import rate_limit
from .results import ErrorCode, SurveyActionError, service_action
from .turnstile import verify_turnstile

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
SIGNUP_LIMIT = 5
SIGNUP_WINDOW_SECONDS = 3600
DISPOSABLE_DOMAINS = (
    'mailinator.com',
    'guerrillamail.com',
    'trashmail.com',
    'tempmail.com',
    'yopmail.com',
)


def normalise_email(email: Optional[str]) -> str:
    return (email or '').strip().lower()


def is_disposable(email: str) -> bool:
    domain = email.rsplit('@', 1)[-1] if '@' in email else ''
    return any(domain.endswith(blocked) for blocked in DISPOSABLE_DOMAINS)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def find_user_by_email(email: str) -> Optional[User]:
    return User.objects.filter(email__iexact=email).order_by('pk').first()


def create_user_with_role(email: str, password: str, role: str, name: str = '') -> User:
    """Create a user and its profile; the e-mail doubles as username."""

    with transaction.atomic():
        user = User.objects.create_user(
            username=email,
            email=email,
            password=password,
            first_name=name[:150],
        )
        Profile.objects.create(user=user, role=role)
    return user


@service_action
def create_seller(
    email: str,
    password: str,
    name: Optional[str] = None,
    turnstile_token: Optional[str] = None,
    remote_ip: Optional[str] = None,
) -> dict:
    """Register a new seller account."""

    email = normalise_email(email)
    password = password or ''
    if not email or len(password) < MIN_PASSWORD_LENGTH:
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'Invalid data')

    if not rate_limit(f'signup:{email}', SIGNUP_LIMIT, SIGNUP_WINDOW_SECONDS).allowed:
        raise SurveyActionError(ErrorCode.RATE_LIMITED, 'Too many attempts. Try again later.')
    if not verify_turnstile(turnstile_token, remote_ip):
        raise SurveyActionError(ErrorCode.FORBIDDEN, 'Security check failed')
    if is_disposable(email):
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'Use a valid e-mail address')

    if find_user_by_email(email) is not None:
        raise SurveyActionError(ErrorCode.EMAIL_TAKEN, 'E-mail already registered')
    try:
        user = create_user_with_role(email, password, Profile.Role.SELLER, (name or '').strip())
    except IntegrityError as exc:
        # A concurrent signup for the same address won the race.
        raise SurveyActionError(ErrorCode.EMAIL_TAKEN, 'E-mail already registered') from exc
    logger.info("Created seller account %s", user.pk)
    return {'id': user.pk, 'email': user.email}


def build_reset_url(token: str) -> str:
    return f"{settings.SITE_URL}/reset-password/?token={quote(token, safe='')}"


@service_action
def request_password_reset(email: str) -> None:
    """E-mail a reset link when ``email`` belongs to an account."""

    email = normalise_email(email)
    if not email:
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'Enter your e-mail address')
    if find_user_by_email(email) is None:
        logger.info("Password reset requested for an unknown address")
        return None

    token = secrets.token_urlsafe(32)
    ttl = settings.PASSWORD_RESET_TTL_MINUTES
    PasswordResetToken.objects.create(
        email=email,
        token_hash=hash_token(token),
        expires_at=timezone.now() + timedelta(minutes=ttl),
    )
    url = build_reset_url(token)
    html = (
        '<p>Use the link below to reset your password:</p>'
        f'<p><a href="{url}">{url}</a></p>'
        f'<p>The link expires in {ttl} minutes.</p>'
    )
    send_email(email, 'Reset your password', html)
    return None


@service_action
def reset_password(token: str, password: str) -> None:
    """Set a new password using a reset token; the token is consumed."""

    token = (token or '').strip()
    password = password or ''
    if not token or len(password) < MIN_PASSWORD_LENGTH:
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'Invalid data')

    now = timezone.now()
    with transaction.atomic():
        record = (
            PasswordResetToken.objects.select_for_update()
            .filter(token_hash=hash_token(token))
            .first()
        )
        if record is None or not record.is_usable(now):
            raise SurveyActionError(ErrorCode.INVALID_TOKEN, 'Invalid or expired token')
        user = find_user_by_email(record.email)
        if user is not None:
            user.set_password(password)
            user.save(update_fields=['password'])
        record.used_at = now
        record.save(update_fields=['used_at'])
    logger.info("Password reset completed for token %s", record.pk)
