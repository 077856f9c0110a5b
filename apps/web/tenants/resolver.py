"""
City/tenant resolver - maps an inbound request to a tenant configuration.

Resolution order (first non-empty candidate wins):
1. Explicit ``city`` query parameter
2. Storefront project id via the project table (plus one legacy project)
3. Storefront page id via the page table
4. ``city`` field in the body
5. First path segment of the referrer URL
6. First label of the request host, unless it is a generic hosting domain
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from bridge_schemas import TenantConfig, TenantRegistry

from apps.web.core.exceptions import UnknownTenantError
from apps.web.core.text import normalize_string

logger = logging.getLogger(__name__)

# The first storefront project predates the project table
LEGACY_PROJECT_ID = "820503"
LEGACY_PROJECT_CITY = "msk"

GENERIC_HOST_SUFFIXES = (
    "vercel.app",
    "ngrok-free.app",
    "ngrok.app",
    "ngrok.io",
    "loca.lt",
    "trycloudflare.com",
    "herokuapp.com",
    "netlify.app",
    "onrender.com",
)


@dataclass(frozen=True)
class CityHints:
    """Everything in a request that may point at a city."""

    query_city: str = ""
    project_id: str = ""
    page_id: str = ""
    body_city: str = ""
    referer: str = ""
    host: str = ""


def _lookup_id(table: dict[str, str], raw_id: str) -> str:
    """Look up an id as given, then in its integer-normalized form."""
    mapped = table.get(raw_id)
    if not mapped and raw_id.isdigit():
        mapped = table.get(str(int(raw_id)))
    return normalize_string(mapped)


def _city_from_referer(referer: str) -> str:
    try:
        path = urlsplit(referer).path
    except ValueError:
        return ""
    segments = [s for s in path.split("/") if s]
    return normalize_string(segments[0]) if segments else ""


def _city_from_host(host: str) -> str:
    hostname = normalize_string(host).split(":")[0]
    if not hostname or hostname == "localhost":
        return ""
    if any(
        hostname == suffix or hostname.endswith(f".{suffix}")
        for suffix in GENERIC_HOST_SUFFIXES
    ):
        return ""
    label = hostname.split(".")[0]
    if not label or label == "www" or label.isdigit():
        return ""
    return label


def infer_city_key(hints: CityHints, registry: TenantRegistry) -> str:
    """Return the first city key the request points at, or ``""``."""
    from_query = normalize_string(hints.query_city)
    if from_query:
        return from_query

    project_id = hints.project_id.strip()
    if project_id:
        from_project = _lookup_id(registry.project_id_to_city, project_id)
        if from_project:
            return from_project
        if project_id == LEGACY_PROJECT_ID:
            return LEGACY_PROJECT_CITY

    page_id = hints.page_id.strip()
    if page_id:
        from_page = _lookup_id(registry.page_id_to_city, page_id)
        if from_page:
            return from_page

    from_body = normalize_string(hints.body_city)
    if from_body:
        return from_body

    if hints.referer:
        from_referer = _city_from_referer(hints.referer)
        if from_referer:
            return from_referer

    return _city_from_host(hints.host)


def resolve_tenant(
    hints: CityHints, registry: TenantRegistry
) -> tuple[str, TenantConfig]:
    """
    Resolve the tenant for a request.

    Falls back to the default tenant, then to the only configured tenant.

    Returns:
        Tuple of (effective city key, tenant config).

    Raises:
        UnknownTenantError: If nothing resolves to a configured tenant.
    """
    city_key = infer_city_key(hints, registry)

    tenant = registry.tenants.get(city_key) if city_key else None
    if tenant is None and registry.default_tenant:
        tenant = registry.tenants.get(registry.default_tenant)
    if tenant is None and len(registry.tenants) == 1:
        tenant = next(iter(registry.tenants.values()))

    if tenant is None:
        resolved = city_key or registry.default_tenant or "default"
        logger.warning("Unknown tenant for city key %r", resolved)
        raise UnknownTenantError("Unknown city", city=resolved)

    if tenant.key != city_key:
        logger.info("City %r not configured, using tenant %s", city_key, tenant.key)
    return tenant.key, tenant
