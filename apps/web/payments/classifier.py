"""
Webhook classifier - tells gateway notifications from storefront orders.

Classification is structural:
- probe: nothing but auth-looking fields (the storefront's "test connection")
- gateway_event: signature header or payment-intent shaped body
- storefront_order: order id / products / payment keys
"""

from collections.abc import Mapping
from typing import Any

from bridge_schemas import WebhookKind

PROBE_KEYS = frozenset({"secret", "token", "test"})

GATEWAY_SIGNATURE_HEADERS = ("X-Hmac-Signature", "X-Signature")
GATEWAY_INTENT_KEYS = frozenset({"id", "status", "amount"})
GATEWAY_HINT_KEYS = frozenset({"currency_code", "metadata"})

STOREFRONT_KEYS = frozenset(
    {
        "orderid",
        "order_id",
        "ORDERID",
        "ORDER_ID",
        "orderId",
        "products",
        "PRODUCTS",
        "payment",
        "formid",
        "tranid",
    }
)


def is_probe(data: Mapping[str, Any]) -> bool:
    """True when the body carries only auth-looking fields, or nothing."""
    return set(data).issubset(PROBE_KEYS)


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


def is_gateway_event(data: Mapping[str, Any], headers: Mapping[str, str]) -> bool:
    if any(_header(headers, h) for h in GATEWAY_SIGNATURE_HEADERS):
        return True
    if isinstance(data.get("payment_intent"), dict):
        return True
    if str(data.get("event", "")).startswith("payment_intent."):
        return True
    keys = set(data)
    return GATEWAY_INTENT_KEYS.issubset(keys) and bool(keys & GATEWAY_HINT_KEYS)


def classify_webhook(
    data: Mapping[str, Any], headers: Mapping[str, str]
) -> WebhookKind:
    """Classify a decoded webhook body."""
    if is_probe(data):
        return WebhookKind.PROBE
    if is_gateway_event(data, headers):
        return WebhookKind.GATEWAY_EVENT
    if set(data) & STOREFRONT_KEYS:
        return WebhookKind.STOREFRONT_ORDER
    return WebhookKind.UNKNOWN
