"""
Order builder - assembles the POS delivery payload.

Handles:
1. Service type (courier only with a usable address, otherwise pickup)
2. Staff-facing comment with everything the POS has no field for
3. Phone sanitization to +<country><number>
4. External number (storefront order id) used as the reconciliation key
"""

import re
import time

from bridge_schemas import (
    CanonicalOrder,
    OrderServiceType,
    ParsedLineItem,
    POSCustomer,
    POSDeliveryPoint,
    POSOrder,
    POSOrderItem,
    POSOrderPayload,
    TenantConfig,
)

from apps.web.core.text import normalize_string

DOMESTIC_TRUNK_PREFIX = "8"
COUNTRY_CODE = "7"
NATIONAL_NUMBER_LENGTH = 11
EXTERNAL_NUMBER_MAX_LENGTH = 50
DEFAULT_CUSTOMER_NAME = "Клиент"

COURIER_MARKERS = ("курьер", "доставк", "courier", "delivery")
ADDRESS_WARNING = (
    "ВНИМАНИЕ: клиент выбрал курьерскую доставку, но адрес неполный. "
    "Заказ оформлен как самовывоз, уточните адрес у клиента."
)

_PHONE_JUNK = re.compile(r"[^\d+]")


def sanitize_phone(raw: str) -> str:
    """
    Normalize a phone number to +<country code><number>.

    ``89045501567`` and ``79045501567`` both become ``+79045501567``; other
    numbers keep their digits and gain a leading ``+``.
    """
    digits = _PHONE_JUNK.sub("", raw or "")
    if not digits:
        return ""
    if digits.startswith("+"):
        return digits
    if len(digits) == NATIONAL_NUMBER_LENGTH:
        if digits.startswith(DOMESTIC_TRUNK_PREFIX):
            return f"+{COUNTRY_CODE}{digits[1:]}"
        if digits.startswith(COUNTRY_CODE):
            return f"+{digits}"
    return f"+{digits}"


def wants_courier(delivery_type: str) -> bool:
    normalized = normalize_string(delivery_type)
    return any(marker in normalized for marker in COURIER_MARKERS)


def is_address_complete(address: str) -> bool:
    """An address is usable if it has at least one letter in it."""
    return any(ch.isalpha() for ch in address or "")


def resolve_service_type(order: CanonicalOrder) -> tuple[OrderServiceType, bool]:
    """
    Decide between courier and pickup.

    Returns:
        Tuple of (service type, whether a courier request was downgraded).
    """
    if not wants_courier(order.delivery_type):
        return OrderServiceType.PICKUP, False
    if is_address_complete(order.address):
        return OrderServiceType.COURIER, False
    return OrderServiceType.PICKUP, True


def external_number(order: CanonicalOrder) -> str:
    if order.order_id:
        return order.order_id[:EXTERNAL_NUMBER_MAX_LENGTH]
    return str(int(time.time() * 1000))


def format_address(order: CanonicalOrder) -> str:
    parts = []
    if order.address_city:
        parts.append(f"Город (поле): {order.address_city}")
    if order.address:
        parts.append(f"Адрес: {order.address}")
    if order.apartment:
        parts.append(f"Этаж/кв: {order.apartment}")
    return ", ".join(parts)


def build_comment(
    city_key: str,
    order: CanonicalOrder,
    items: list[ParsedLineItem],
    address_downgraded: bool = False,
) -> str:
    """Build the human-readable order comment shown to restaurant staff."""
    lines: list[str] = []

    if city_key:
        lines.append(f"Город: {city_key}")
    if order.order_id:
        lines.append(f"Tilda order: {order.order_id}")
    if order.payment_id:
        lines.append(f"Payment: {order.payment_id}")
    if order.delivery_type:
        lines.append(f"Доставка: {order.delivery_type}")
    if address_downgraded:
        lines.append(ADDRESS_WARNING)

    when = []
    if order.delivery_date:
        when.append(f"Дата: {order.delivery_date}")
    if order.delivery_time:
        when.append(f"Время: {order.delivery_time}")
    if when:
        lines.append(", ".join(when))

    address = format_address(order)
    if address:
        lines.append(address)

    if order.messenger:
        lines.append(f"Мессенджер: {order.messenger}")

    if items:
        lines.append("Состав:")
        for item in items:
            modifier = f" ({item.modifier})" if item.modifier else ""
            lines.append(f"- {item.name}{modifier} x{item.quantity}")

    return "\n".join(lines)


def build_payload(
    tenant: TenantConfig,
    city_key: str,
    order: CanonicalOrder,
    parsed_items: list[ParsedLineItem],
    pos_items: list[POSOrderItem],
) -> POSOrderPayload:
    """Construct a fresh POS payload (without payments) for one request."""
    service_type, downgraded = resolve_service_type(order)

    delivery_point = None
    if service_type == OrderServiceType.COURIER:
        delivery_point = POSDeliveryPoint(comment=format_address(order))

    return POSOrderPayload(
        organization_id=tenant.organization_id,
        terminal_group_id=tenant.terminal_group_id,
        order=POSOrder(
            external_number=external_number(order),
            order_service_type=service_type,
            phone=sanitize_phone(order.phone),
            customer=POSCustomer(name=order.name or DEFAULT_CUSTOMER_NAME),
            comment=build_comment(city_key, order, parsed_items, downgraded),
            items=pos_items,
            delivery_point=delivery_point,
        ),
    )
