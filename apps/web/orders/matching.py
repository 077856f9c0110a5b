"""
Catalog matcher - resolves parsed line items to POS product ids.

Precedence for each item:
1. A POS product id already carried by the item
2. Candidate identifiers, in order, against the tenant's mapping rows
3. Name + modifier (weight keys compared when both sides have one)

Items that match nothing are reported as unmapped. An order that ends up
with no items gets the tenant's fallback product.
"""

import logging
from dataclasses import dataclass, field

from bridge_schemas import (
    CatalogMapping,
    ParsedLineItem,
    POSOrderItem,
    POSOrderItemModifier,
    TenantConfig,
    UnmappedItem,
)

from apps.web.core.exceptions import UnmappedCatalogError
from apps.web.core.text import normalize_string
from apps.web.orders.products import catalog_weight_key

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Matched POS line items plus whatever could not be mapped."""

    items: list[POSOrderItem] = field(default_factory=list)
    unmapped: list[UnmappedItem] = field(default_factory=list)


def _modifier_matches(row: CatalogMapping, item: ParsedLineItem) -> bool:
    row_modifier = normalize_string(row.modifier)
    item_modifier = normalize_string(item.modifier)
    if not row_modifier and not item_modifier:
        return True

    row_weight = catalog_weight_key(row.modifier)
    item_weight = normalize_string(item.weight_key)
    if row_weight and item_weight:
        return row_weight == item_weight
    return row_modifier == item_modifier


def find_mapping(
    rows: list[CatalogMapping], city_key: str, item: ParsedLineItem
) -> CatalogMapping | None:
    """
    Find the mapping row for an item within one tenant.

    Identifier matches always win over name+modifier matches.
    """
    city = normalize_string(city_key)
    tenant_rows = [r for r in rows if normalize_string(r.city) == city]
    if not tenant_rows:
        return None

    for identifier in item.external_ids:
        wanted = normalize_string(identifier)
        for row in tenant_rows:
            if not row.pos_product_id:
                continue
            if normalize_string(row.storefront_product_id) == wanted:
                return row

    name = normalize_string(item.name)
    for row in tenant_rows:
        if not row.pos_product_id or normalize_string(row.name) != name:
            continue
        if _modifier_matches(row, item):
            return row
    return None


def _line_item(
    product_id: str, quantity: int, modifier_id: str = ""
) -> POSOrderItem:
    modifiers = (
        [POSOrderItemModifier(product_id=modifier_id, amount=1)] if modifier_id else None
    )
    return POSOrderItem(product_id=product_id, amount=quantity, modifiers=modifiers)


def match_items(
    items: list[ParsedLineItem],
    rows: list[CatalogMapping],
    city_key: str,
    tenant: TenantConfig,
) -> MatchResult:
    """
    Map parsed items to POS line items for a tenant.

    Raises:
        UnmappedCatalogError: If nothing matched and no fallback product is set.
    """
    result = MatchResult()

    for item in items:
        if item.pos_product_id:
            result.items.append(_line_item(item.pos_product_id, item.quantity))
            continue

        row = find_mapping(rows, city_key, item)
        if row is not None:
            result.items.append(
                _line_item(row.pos_product_id, item.quantity, row.pos_modifier_id)
            )
        else:
            result.unmapped.append(
                UnmappedItem(name=item.name, modifier_text=item.modifier, raw=item.raw)
            )

    if result.unmapped:
        logger.warning(
            "Unmapped products for %s: %s",
            city_key,
            ", ".join(u.name for u in result.unmapped),
        )

    if not result.items:
        if not tenant.fallback_product_id:
            raise UnmappedCatalogError(
                "No mapped items and no fallbackProductId configured", city=city_key
            )
        result.items.append(_line_item(tenant.fallback_product_id, 1))

    return result
