"""
Catalog mapping source - storefront products to POS product ids.

Modes (``TILDA_IIKO_MAPPING_MODE``):
- ``env``: JSON array embedded in ``TILDA_IIKO_MAPPING_JSON``
- ``file``: ``TILDA_IIKO_MAPPING_FILE``, ``.json`` or ``.csv``
- ``csv_url``: CSV fetched over HTTP from ``TILDA_IIKO_MAPPING_CSV_URL``

Rows are cached in the CacheStore for ``TILDA_IIKO_MAPPING_CACHE_TTL`` seconds.
"""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any

from django.conf import settings

import httpx
from bridge_schemas import CatalogMapping

from apps.web.core.exceptions import CatalogSourceError
from apps.web.core.text import as_text, normalize_string
from apps.web.pos.cache import CacheStore

logger = logging.getLogger(__name__)

# Column spellings seen in hand-maintained mapping sheets
CITY_COLUMNS = ("city", "город", "citykey")
PRODUCT_ID_COLUMNS = ("tilda_product_id", "tilda product id", "tilda_productid", "tildaproductid")
NAME_COLUMNS = ("tilda_product_name", "tilda name", "product_name", "tildaname")
MODIFIER_COLUMNS = ("tilda_modifier", "tilda_modifier_value", "modifier", "tildamodifier")
POS_PRODUCT_COLUMNS = ("iiko_product_id", "iiko product id", "iiko_productid", "iikoproductid")
POS_MODIFIER_COLUMNS = ("iiko_modifier_id", "iiko modifier id", "iiko_modifierid", "iikomodifierid")


def _column(row: dict[str, Any], names: tuple[str, ...]) -> str:
    for name in names:
        value = as_text(row.get(name))
        if value:
            return value
    return ""


def mapping_from_row(row: dict[str, Any]) -> CatalogMapping:
    """Build a CatalogMapping from a row with loosely spelled column names."""
    normalized = {normalize_string(k): v for k, v in row.items() if k is not None}
    return CatalogMapping(
        city=_column(normalized, CITY_COLUMNS),
        storefront_product_id=_column(normalized, PRODUCT_ID_COLUMNS),
        name=_column(normalized, NAME_COLUMNS),
        modifier=_column(normalized, MODIFIER_COLUMNS),
        pos_product_id=_column(normalized, POS_PRODUCT_COLUMNS),
        pos_modifier_id=_column(normalized, POS_MODIFIER_COLUMNS),
    )


def parse_csv(text: str) -> list[CatalogMapping]:
    """Parse CSV mapping text; the first row is the header."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows = []
    for row in reader:
        if not any(as_text(v) for v in row.values() if isinstance(v, str)):
            continue
        rows.append(mapping_from_row(row))
    return rows


def parse_json_rows(raw: Any) -> list[CatalogMapping]:
    """Parse an already-decoded JSON array of mapping rows."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw or "[]")
        except ValueError:
            logger.warning("Catalog mapping JSON is invalid, using empty catalog")
            return []
    if not isinstance(raw, list):
        return []
    return [mapping_from_row(row) for row in raw if isinstance(row, dict)]


async def _fetch_csv(url: str, timeout: float) -> list[CatalogMapping]:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise CatalogSourceError(
            f"Catalog CSV fetch failed: {e.response.status_code}"
        ) from e
    except httpx.RequestError as e:
        raise CatalogSourceError(f"Catalog CSV fetch failed: {e}") from e
    return parse_csv(response.text)


def _read_file(path: str) -> list[CatalogMapping]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogSourceError(f"Catalog file unreadable: {e}") from e
    if path.lower().endswith(".csv"):
        return parse_csv(text)
    return parse_json_rows(text)


async def load_catalog(cache: CacheStore) -> list[CatalogMapping]:
    """
    Return catalog mapping rows, loading them from the configured source on
    a cache miss or TTL expiry.

    Raises:
        CatalogSourceError: If a file or remote source cannot be read.
    """
    ttl = float(getattr(settings, "TILDA_IIKO_MAPPING_CACHE_TTL", 300))
    cached = cache.get_catalog(ttl)
    if cached is not None:
        return cached

    mode = normalize_string(getattr(settings, "TILDA_IIKO_MAPPING_MODE", "env"))

    if mode == "csv_url":
        url = getattr(settings, "TILDA_IIKO_MAPPING_CSV_URL", "")
        if url:
            timeout = float(getattr(settings, "CATALOG_FETCH_TIMEOUT", 15.0))
            rows = await _fetch_csv(url, timeout)
        else:
            logger.warning("Catalog mode csv_url but no TILDA_IIKO_MAPPING_CSV_URL set")
            rows = []
    elif mode == "file":
        path = getattr(settings, "TILDA_IIKO_MAPPING_FILE", "")
        rows = _read_file(path) if path else []
    else:
        rows = parse_json_rows(getattr(settings, "TILDA_IIKO_MAPPING_JSON", []))

    logger.info("Loaded %d catalog mapping rows (mode=%s)", len(rows), mode)
    cache.put_catalog(rows)
    return rows
