"""Change the role of an existing account.

Platform accounts cannot be created through the signup page; an operator
promotes an existing seller with::

    python manage.py update_user_role --email someone@example.com --role platform
"""

from __future__ import annotations

import logging

from django.core.management.base import BaseCommand, CommandError

from survey.models import Profile
from survey.services.accounts import find_user_by_email, normalise_email

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Set the role (platform or seller) of the account with the given e-mail."

    def add_arguments(self, parser):
        parser.add_argument("--email", required=True, help="E-mail address of the account.")
        parser.add_argument(
            "--role",
            required=True,
            choices=Profile.Role.values,
            help="New role for the account.",
        )

    def handle(self, *args, **options):
        email = normalise_email(options["email"])
        role = options["role"]
        user = find_user_by_email(email)
        if user is None:
            raise CommandError(f"User not found: {email}")

        Profile.objects.update_or_create(user=user, defaults={'role': role})
        logger.info("Role of user %s set to %s", user.pk, role)
        self.stdout.write(self.style.SUCCESS(f"Updated role of {user.email} to {role}."))
