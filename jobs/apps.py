"""Django app configuration for service jobs."""

from django.apps import AppConfig


class JobsConfig(AppConfig):
    """AppConfig for the minimal job records parts usage links to."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "jobs"
