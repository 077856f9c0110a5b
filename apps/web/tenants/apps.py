"""Django app configuration for city tenants."""

from django.apps import AppConfig


class TenantsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.tenants"
    verbose_name = "City Tenants"
