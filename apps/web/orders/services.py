"""
Order pipeline - storefront order webhook to POS order.

Steps:
1. Decode body, acknowledge liveness probes, check the shared secret
2. Resolve the tenant
3. Extract the canonical order and parse its products
4. Match products against the catalog
5. Build the POS payload
6. Get a token and create the order, or update an existing one's payment
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from django.conf import settings

import httpx
from bridge_schemas import CanonicalOrder, RawOrderRequest

from apps.web.core.exceptions import AuthError, BridgeError
from apps.web.orders.auth import parse_secrets, verify_shared_secret
from apps.web.orders.body import parse_body
from apps.web.orders.builder import build_payload
from apps.web.orders.catalog import load_catalog
from apps.web.orders.fields import extract_order
from apps.web.orders.matching import match_items
from apps.web.orders.products import parse_products
from apps.web.orders.reconciliation import SearchWindow, submit_order
from apps.web.payments.classifier import is_probe
from apps.web.pos.adapters import POSAdapter, get_adapter
from apps.web.pos.cache import CacheStore, cache_store
from apps.web.pos.exceptions import UpstreamPOSError
from apps.web.tenants.registry import load_registry
from apps.web.tenants.resolver import CityHints, resolve_tenant

logger = logging.getLogger(__name__)


@dataclass
class OrderWebhookResult:
    """HTTP status plus JSON body for an order webhook call."""

    status: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status < 400


def build_adapter(
    cache: CacheStore, http_client: httpx.AsyncClient | None = None
) -> POSAdapter:
    """Create the POS adapter configured by settings."""
    return get_adapter(
        "iiko",
        cache,
        base_url=getattr(settings, "IIKO_BASE_URL", "https://api-ru.iiko.services"),
        http_client=http_client,
        token_timeout=float(getattr(settings, "POS_TOKEN_TIMEOUT", 15.0)),
        order_timeout=float(getattr(settings, "POS_ORDER_TIMEOUT", 20.0)),
        token_lifetime=int(getattr(settings, "POS_TOKEN_LIFETIME", 3600)),
        token_safety_margin=int(getattr(settings, "POS_TOKEN_SAFETY_MARGIN", 600)),
    )


def search_window() -> SearchWindow:
    return SearchWindow(
        lookback=timedelta(days=float(getattr(settings, "RECONCILE_LOOKBACK_DAYS", 7))),
        lookahead=timedelta(days=float(getattr(settings, "RECONCILE_LOOKAHEAD_DAYS", 1))),
    )


def city_hints(order: CanonicalOrder, raw: RawOrderRequest) -> CityHints:
    """Collect every city hint from the query string, body and headers."""
    return CityHints(
        query_city=raw.query.get("city", ""),
        project_id=order.project_id
        or raw.query.get("projectid", "")
        or raw.query.get("projectId", ""),
        page_id=order.page_id or raw.query.get("pageid", "") or raw.query.get("pageId", ""),
        body_city=order.city_hint,
        referer=order.referer or raw.header("Referer"),
        host=raw.header("X-Forwarded-Host") or raw.header("Host"),
    )


async def process_order(
    data: dict[str, Any],
    raw: RawOrderRequest,
    request_id: str,
    cache: CacheStore,
    http_client: httpx.AsyncClient | None = None,
) -> OrderWebhookResult:
    """
    Translate a decoded order body into a POS order.

    Raises:
        UnknownTenantError: If no tenant can be resolved.
        UnmappedCatalogError: If no item maps and no fallback exists.
        CatalogSourceError: If the catalog source cannot be loaded.
        UpstreamPOSError: If a POS call fails.
    """
    order = extract_order(data)
    registry = load_registry()
    city_key, tenant = resolve_tenant(city_hints(order, raw), registry)

    parsed_items = parse_products(order.products_raw)
    rows = await load_catalog(cache)
    match = match_items(parsed_items, rows, city_key, tenant)
    payload = build_payload(tenant, city_key, order, parsed_items, match.items)

    adapter = build_adapter(cache, http_client)
    try:
        token = await adapter.get_token(tenant)
        outcome = await submit_order(
            adapter, token, tenant, order, payload, window=search_window()
        )
    finally:
        await adapter.close()

    logger.info(
        "[%s] %s order %s for %s: %d items, %d unmapped",
        request_id,
        outcome.action.value,
        payload.order.external_number,
        city_key,
        len(match.items),
        len(match.unmapped),
    )

    return OrderWebhookResult(
        status=200,
        payload={
            "ok": True,
            "requestId": request_id,
            "city": city_key,
            "action": outcome.action.value,
            "mappedItems": len(match.items),
            "unmappedItems": [
                u.model_dump(by_alias=True) for u in match.unmapped
            ],
            "iiko": outcome.response,
        },
    )


def _upstream_body(error: UpstreamPOSError) -> Any:
    if not error.response_body:
        return None
    try:
        return json.loads(error.response_body)
    except ValueError:
        return error.response_body


def handle_order_webhook(
    raw: RawOrderRequest,
    request_id: str,
    cache: CacheStore = cache_store,
    check_secret: bool = True,
) -> OrderWebhookResult:
    """
    Run the order pipeline and map known errors to a structured result.

    This is the in-process entry point shared by the order webhook view and
    the payment-notification webhook. Storefront bodies are checked against
    the shared secret; orders synthesized from a verified gateway intent are
    passed with ``check_secret=False``.

    Unexpected exceptions propagate to the caller.
    """
    try:
        parsed = parse_body(raw.body)

        if is_probe(parsed.data):
            logger.info("[%s] Probe request acknowledged", request_id)
            return OrderWebhookResult(
                status=200, payload={"ok": True, "requestId": request_id, "probe": True}
            )

        if check_secret:
            accepted = parse_secrets(getattr(settings, "TILDA_WEBHOOK_SECRET", ""))
            verify_shared_secret(parsed.data, raw, accepted)

        return asyncio.run(process_order(parsed.data, raw, request_id, cache))

    except AuthError as e:
        return OrderWebhookResult(
            status=e.status_code,
            payload={
                "ok": False,
                "requestId": request_id,
                "error": e.message,
                "debug": {
                    "providedHash": e.provided_hash,
                    "expectedHashes": e.expected_hashes,
                },
            },
        )
    except BridgeError as e:
        logger.warning("[%s] Order rejected: %s (city=%s)", request_id, e.message, e.city)
        return OrderWebhookResult(
            status=e.status_code,
            payload={
                "ok": False,
                "requestId": request_id,
                "error": e.message,
                "city": e.city,
            },
        )
    except UpstreamPOSError as e:
        logger.error(
            "[%s] POS call failed: %s (status=%s)", request_id, e.message, e.status_code
        )
        return OrderWebhookResult(
            status=e.status_code or 500,
            payload={
                "ok": False,
                "requestId": request_id,
                "error": e.message,
                "iikoError": _upstream_body(e),
            },
        )
