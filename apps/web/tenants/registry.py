"""
Tenant registry - builds typed tenant configuration from settings.

The raw value is the ``TILDA_IIKO_CITIES_JSON`` environment variable, already
decoded by django-environ into ``settings.TILDA_IIKO_CITIES``:

    {
        "defaultCity": "msk",
        "projectIdToCity": {"820503": "msk"},
        "pageIdToCity": {"10004506": "msk"},
        "cities": {"msk": {"apiLogin": "...", "organizationId": "...", ...}}
    }
"""

import logging
from typing import Any

from django.conf import settings

from bridge_schemas import TenantConfig, TenantRegistry
from pydantic import ValidationError as PydanticValidationError

from apps.web.core.text import normalize_string

logger = logging.getLogger(__name__)

# Older deployments spelled the project table differently
_PROJECT_TABLE_KEYS = ("projectIdToCity", "projectidToCity", "projectIdCity")


def _lookup_table(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(k).strip(): str(v) for k, v in raw.items() if v}


def build_registry(raw: Any) -> TenantRegistry:
    """
    Build a TenantRegistry from a decoded cities config.

    Tenants missing a login, organization or terminal group are placeholders
    and are skipped.
    """
    if not isinstance(raw, dict):
        return TenantRegistry()

    project_table: dict[str, str] = {}
    for key in _PROJECT_TABLE_KEYS:
        if isinstance(raw.get(key), dict):
            project_table = _lookup_table(raw[key])
            break

    tenants: dict[str, TenantConfig] = {}
    cities = raw.get("cities") if isinstance(raw.get("cities"), dict) else {}
    for city_key, city_raw in cities.items():
        key = normalize_string(city_key)
        if not key or not isinstance(city_raw, dict):
            continue
        try:
            tenant = TenantConfig(key=key, **city_raw)
        except (PydanticValidationError, TypeError) as e:
            logger.warning("Skipping invalid tenant config %s: %s", key, e)
            continue
        if not (tenant.api_login and tenant.organization_id and tenant.terminal_group_id):
            logger.debug("Skipping incomplete tenant config: %s", key)
            continue
        tenants[key] = tenant

    return TenantRegistry(
        default_tenant=normalize_string(raw.get("defaultCity")),
        project_id_to_city=project_table,
        page_id_to_city=_lookup_table(raw.get("pageIdToCity")),
        tenants=tenants,
    )


def load_registry() -> TenantRegistry:
    """Build the registry from the current Django settings."""
    return build_registry(getattr(settings, "TILDA_IIKO_CITIES", {}))
