"""Check whether an e-mail and password pair would sign in.

Useful when a user reports that they cannot log in: the command reports
whether the account exists, its role and whether the password matches,
without changing anything.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from survey.models import Profile
from survey.services.accounts import find_user_by_email, normalise_email


class Command(BaseCommand):
    help = "Report whether an e-mail/password pair matches a stored account."

    def add_arguments(self, parser):
        parser.add_argument("--email", required=True, help="E-mail address of the account.")
        parser.add_argument("--password", required=True, help="Password to check.")

    def handle(self, *args, **options):
        email = normalise_email(options["email"])
        if not email:
            raise CommandError("--email must not be empty.")

        user = find_user_by_email(email)
        if user is None:
            self.stdout.write(self.style.WARNING("User not found"))
            return

        profile = Profile.objects.filter(user=user).first()
        role = profile.role if profile else Profile.Role.SELLER
        matches = user.check_password(options["password"])
        hasher = (user.password or '').split('$', 1)[0]
        self.stdout.write(
            f"found=True email={user.email} role={role} "
            f"password_matches={matches} hasher={hasher} active={user.is_active}"
        )
