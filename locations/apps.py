"""Django app configuration for storage locations."""

from django.apps import AppConfig


class LocationsConfig(AppConfig):
    """AppConfig for the storage location hierarchy."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "locations"
