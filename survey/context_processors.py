"""Custom context processors for the survey application.

Templates need to know the role of the signed-in user to pick the
navigation links, and whether the wizard closes once the results were
reached.
"""

from __future__ import annotations

from typing import Any, Dict

from django.conf import settings

from .models import Profile


def survey_context(request) -> Dict[str, Any]:
    """Expose the current role and the results lock to all templates."""
    role = None
    user = getattr(request, 'user', None)
    if user and user.is_authenticated:
        profile = Profile.objects.filter(user_id=user.pk).only('role').first()
        role = profile.role if profile else Profile.Role.SELLER
    return {
        'survey_role': role,
        'is_platform_user': role == Profile.Role.PLATFORM,
        'is_seller_user': role == Profile.Role.SELLER,
        'lock_results_nav': settings.LOCK_RESULTS_NAV,
        'turnstile_site_key': getattr(settings, 'TURNSTILE_SITE_KEY', ''),
    }
