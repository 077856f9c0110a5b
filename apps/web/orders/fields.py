"""
Order field extractor - canonical order from an inconsistently-keyed body.

Every logical field has an explicit, ordered list of key spellings seen in
storefront payloads. The first non-empty value wins. A nested ``payment``
object (sometimes JSON-encoded text) backs up order id, amount and products.
"""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from bridge_schemas import CanonicalOrder

from apps.web.core.text import as_text, normalize_string

ORDER_ID_KEYS = ("orderid", "order_id", "ORDERID", "ORDER_ID", "orderId", "payment_order_id")
PAYMENT_ID_KEYS = ("paymentid", "payment_id", "PAYMENT_ID", "paymentId", "PAYMENTID")
AMOUNT_KEYS = ("price", "total", "amount", "sum", "subtotal", "ORDER_SUM", "AMOUNT")
NAME_KEYS = ("name", "NAME", "Name")
EMAIL_KEYS = ("email", "EMAIL", "Email")
PHONE_KEYS = ("phone", "PHONE", "Phone")
PRODUCTS_KEYS = ("products", "PRODUCTS")
DELIVERY_TYPE_KEYS = ("delivery_type", "deliveryType", "DELIVERY_TYPE", "delivery")
ADDRESS_KEYS = ("building", "address", "street", "ADDRESS")
APARTMENT_KEYS = ("office", "apartment", "flat")
CITY_KEYS = ("city", "CITY")
DELIVERY_DATE_KEYS = ("delivery_date", "deliveryDate")
DELIVERY_TIME_KEYS = ("delivery_time", "deliveryTime")
MESSENGER_KEYS = ("messenger", "MESSENGER")
PROJECT_ID_KEYS = ("projectid", "projectId", "project_id", "PROJECTID", "PROJECT_ID")
PAGE_ID_KEYS = ("pageid", "pageId", "page_id", "PAGEID")
REFERER_KEYS = ("referer", "referrer")
CALLBACK_URL_KEYS = ("callback_url", "CALLBACK_URL")

# Fields whose value may indicate that the order has been paid
PAID_STATUS_KEYS = (
    "payment_status",
    "paymentStatus",
    "status",
    "paid",
    "is_paid",
    "success",
    "payment_success",
)
AFFIRMATIVE_TOKENS = frozenset({"1", "true", "yes"})
PAID_MARKERS = ("paid", "success", "оплач")

_NON_NUMERIC = re.compile(r"[^\d.]")


def first_value(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the first non-empty value stored under any of ``keys``."""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if isinstance(value, list | dict) and not value:
            continue
        return value
    return None


def first_text(data: dict[str, Any], keys: tuple[str, ...]) -> str:
    return as_text(first_value(data, keys))


def parse_amount(value: Any) -> Decimal | None:
    """Parse a loosely formatted money amount; only positive values count."""
    if value is None or isinstance(value, bool):
        return None
    cleaned = _NON_NUMERIC.sub("", str(value).replace(",", "."))
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def extract_total(data: dict[str, Any]) -> Decimal | None:
    """Return the first amount-like field that parses to a positive number."""
    for key in AMOUNT_KEYS:
        amount = parse_amount(data.get(key))
        if amount is not None:
            return amount
    return None


def nested_payment(data: dict[str, Any]) -> dict[str, Any]:
    """Return the nested ``payment`` object, decoding it if it is JSON text."""
    payment = data.get("payment")
    if isinstance(payment, str) and payment.strip():
        try:
            payment = json.loads(payment)
        except ValueError:
            return {}
    return payment if isinstance(payment, dict) else {}


def infer_paid(data: dict[str, Any], payment_id: str) -> bool:
    """An order counts as paid if it has a payment id or a paid-looking status."""
    if payment_id:
        return True
    for key in PAID_STATUS_KEYS:
        status = normalize_string(data.get(key))
        if not status:
            continue
        if status in AFFIRMATIVE_TOKENS:
            return True
        if any(marker in status for marker in PAID_MARKERS):
            return True
    return False


def extract_order(data: dict[str, Any]) -> CanonicalOrder:
    """Build the canonical order view of a decoded request body."""
    payment = nested_payment(data)

    order_id = first_text(data, ORDER_ID_KEYS) or first_text(payment, ORDER_ID_KEYS)
    payment_id = first_text(data, PAYMENT_ID_KEYS)

    total = extract_total(data)
    if total is None and payment:
        total = extract_total(payment)

    products = first_value(data, PRODUCTS_KEYS)
    if products is None and payment:
        products = first_value(payment, PRODUCTS_KEYS)

    return CanonicalOrder(
        name=first_text(data, NAME_KEYS),
        phone=first_text(data, PHONE_KEYS),
        email=first_text(data, EMAIL_KEYS),
        delivery_type=first_text(data, DELIVERY_TYPE_KEYS),
        address=first_text(data, ADDRESS_KEYS),
        apartment=first_text(data, APARTMENT_KEYS),
        address_city=first_text(data, CITY_KEYS),
        delivery_date=first_text(data, DELIVERY_DATE_KEYS),
        delivery_time=first_text(data, DELIVERY_TIME_KEYS),
        messenger=first_text(data, MESSENGER_KEYS),
        products_raw=products,
        total=total,
        order_id=order_id,
        payment_id=payment_id,
        paid=infer_paid(data, payment_id),
        city_hint=first_text(data, CITY_KEYS),
        project_id=first_text(data, PROJECT_ID_KEYS),
        page_id=first_text(data, PAGE_ID_KEYS),
        referer=first_text(data, REFERER_KEYS),
        callback_url=first_text(data, CALLBACK_URL_KEYS),
    )
