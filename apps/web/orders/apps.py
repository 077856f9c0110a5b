"""Django app configuration for storefront order translation."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Order webhook app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.orders"
    verbose_name = "Storefront Orders"
