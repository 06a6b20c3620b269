"""Feature flags read once from Django settings and passed to services."""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class FeatureFlags:
    # Lock the wizard once the seller reached the results step.
    lock_results_nav: bool = True

    @classmethod
    def from_settings(cls) -> 'FeatureFlags':
        return cls(lock_results_nav=bool(getattr(settings, 'LOCK_RESULTS_NAV', True)))
