"""Django app configuration for purchasing."""

from django.apps import AppConfig


class PurchasingConfig(AppConfig):
    """AppConfig for purchase orders, receiving and core charges."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "purchasing"
