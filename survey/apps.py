"""Application configuration for the survey app.

``ready()`` only wires up signal receivers.  It never touches the database so
management commands such as ``migrate`` keep working on an empty schema.
"""

from __future__ import annotations

from django.apps import AppConfig


class SurveyConfig(AppConfig):
    """Custom AppConfig for the survey application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'survey'
    verbose_name = 'Commercial survey'

    def ready(self) -> None:
        """Connect the sign-in receiver that records ``last_login``."""

        from . import signals

        signals.connect_login_receivers()
