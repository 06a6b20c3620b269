"""Explicit authorization context passed to every service call.

Views build an ``Actor`` from the authenticated request user and hand it to
the services, which check the role before reading or writing anything.  An
anonymous request produces ``None`` and fails with ``UNAUTHORIZED``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.contrib.auth.models import User

from ..models import Profile
from .results import ErrorCode, SurveyActionError


@dataclass(frozen=True)
class Actor:
    user_id: int
    email: str
    role: str

    @property
    def is_platform(self) -> bool:
        return self.role == Profile.Role.PLATFORM

    @property
    def is_seller(self) -> bool:
        return self.role == Profile.Role.SELLER

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional['Actor']:
        """Build an actor for ``user``, reading the role from its profile.

        Returns ``None`` for anonymous users.  Accounts without a profile
        are treated as sellers, the default role of a new account.
        """

        if user is None or not user.is_authenticated:
            return None
        profile = Profile.objects.filter(user_id=user.pk).only('role').first()
        role = profile.role if profile else Profile.Role.SELLER
        return cls(user_id=user.pk, email=user.email or user.username, role=role)


def require_role(actor: Optional[Actor], role: str) -> Actor:
    """Return ``actor`` when it holds ``role``; raise the matching failure otherwise."""

    if actor is None:
        raise SurveyActionError(ErrorCode.UNAUTHORIZED, 'You need to sign in to continue.')
    if actor.role != role:
        raise SurveyActionError(ErrorCode.FORBIDDEN, 'You do not have access to this action.')
    return actor


def require_seller(actor: Optional[Actor]) -> Actor:
    return require_role(actor, Profile.Role.SELLER)


def require_platform(actor: Optional[Actor]) -> Actor:
    return require_role(actor, Profile.Role.PLATFORM)
