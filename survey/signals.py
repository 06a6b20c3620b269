"""Signal receivers for authentication events.

Django's own ``update_last_login`` receiver raises when the database write
fails, which would turn a successful sign-in into an error page.  The
receiver below replaces it with a best-effort update that logs and carries
on.
"""

from __future__ import annotations

import logging

from django.contrib.auth.models import update_last_login
from django.contrib.auth.signals import user_logged_in
from django.db import DatabaseError
from django.utils import timezone

logger = logging.getLogger(__name__)


def record_last_login(sender, request, user, **kwargs) -> None:
    """Store the sign-in time on ``user.last_login`` without failing the login."""

    now = timezone.now()
    try:
        type(user).objects.filter(pk=user.pk).update(last_login=now)
    except DatabaseError:
        logger.warning("Could not update last_login for user %s", user.pk, exc_info=True)
        return
    user.last_login = now


def connect_login_receivers() -> None:
    user_logged_in.disconnect(update_last_login, dispatch_uid='update_last_login')
    user_logged_in.connect(record_last_login, dispatch_uid='survey_record_last_login')
