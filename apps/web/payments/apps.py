"""Django app configuration for payments."""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Payment gateway app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.payments"
    verbose_name = "Payments"
