"""
Pytest configuration for Django app tests.
"""

import pytest
from bridge_schemas import CatalogMapping, TenantConfig

from apps.web.core.tests.factories import (
    CATALOG_ROWS,
    CITIES_CONFIG,
    IIKO_BASE_URL,
    MSK_TENANT,
    SPB_TENANT,
)
from apps.web.pos.cache import CacheStore, cache_store


@pytest.fixture(autouse=True)
def _reset_cache_store():
    """The process-wide cache must not leak tokens or catalog rows between tests."""
    cache_store.clear()
    yield
    cache_store.clear()


@pytest.fixture
def cache() -> CacheStore:
    return CacheStore()


@pytest.fixture
def msk_tenant() -> TenantConfig:
    return TenantConfig(key="msk", **MSK_TENANT)


@pytest.fixture
def spb_tenant() -> TenantConfig:
    return TenantConfig(key="spb", **SPB_TENANT)


@pytest.fixture
def catalog_rows() -> list[CatalogMapping]:
    return [
        CatalogMapping(
            city=row["city"],
            storefront_product_id=row.get("tilda_product_id", ""),
            name=row["tilda_product_name"],
            modifier=row.get("tilda_modifier", ""),
            pos_product_id=row["iiko_product_id"],
        )
        for row in CATALOG_ROWS
    ]


@pytest.fixture
def bridge_settings(settings):
    """Settings for a two-city deployment with an embedded catalog."""
    settings.IIKO_BASE_URL = IIKO_BASE_URL
    settings.TILDA_IIKO_CITIES = CITIES_CONFIG
    settings.TILDA_IIKO_MAPPING_MODE = "env"
    settings.TILDA_IIKO_MAPPING_JSON = CATALOG_ROWS
    settings.TILDA_WEBHOOK_SECRET = ""
    settings.PAYMENT_CREATES_POS_ORDER = False
    settings.TILDA_LOGIN = "ziina_shop"
    settings.TILDA_SECRET = "tilda-secret"
    settings.TILDA_NOTIFICATION_URL = ""
    settings.ZIINA_API_TOKEN = "ziina-token"
    settings.ZIINA_WEBHOOK_SECRET = ""
    settings.ZIINA_SUCCESS_URL = ""
    settings.ZIINA_CANCEL_URL = ""
    settings.PAYMENT_CURRENCY = "AED"
    return settings
