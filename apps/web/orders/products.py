"""
Product parser - storefront product lists to ParsedLineItem.

Two input shapes are accepted:
- a structured array of product objects (or JSON text encoding one)
- a ``;``-delimited text blob of ``name (modifier) - qty x price = total`` lines
"""

import json
import re
from typing import Any

from bridge_schemas import ParsedLineItem

from apps.web.core.text import as_text, normalize_string

# Identifier fields in priority order
POS_ID_KEYS = ("iiko_product_id", "iikoProductId", "pos_product_id", "posProductId")
VARIANT_ID_KEYS = (
    "variant_external_id",
    "variantExternalId",
    "variant_id",
    "variantId",
)
PRODUCT_ID_KEYS = (
    "externalid",
    "external_id",
    "externalId",
    "tilda_product_id",
    "tildaProductId",
    "product_id",
    "productId",
)
GENERIC_ID_KEYS = ("id", "sku", "article", "code")

NAME_KEYS = ("name", "title", "product", "product_name")
MODIFIER_KEYS = ("modifier", "variant", "option")
QUANTITY_KEYS = ("quantity", "amount", "qty")

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
WEIGHT_PATTERN = re.compile(r"(\d{2,4})\s*(г|гр|g)\b")
BARE_WEIGHT_PATTERN = re.compile(r"^\d{2,4}$")
LINE_PATTERN = re.compile(
    r"^(.*?)\s*-\s*(\d+)\s*x\s*([\d.,]+)\s*=\s*([\d.,]+)\s*(.*)?$", re.IGNORECASE
)
TRAILING_PARENS = re.compile(r"^(.*)\(([^()]*)\)\s*$")


def parse_weight_key(text: Any) -> str:
    """Extract a 2-4 digit gram weight (``250 г``, ``300 гр``, ``500g``)."""
    match = WEIGHT_PATTERN.search(normalize_string(text))
    return match.group(1) if match else ""


def catalog_weight_key(text: Any) -> str:
    """Weight key of a catalog modifier; a bare number counts as grams."""
    weight = parse_weight_key(text)
    if weight:
        return weight
    normalized = normalize_string(text)
    return normalized if BARE_WEIGHT_PATTERN.match(normalized) else ""


def clamp_quantity(value: Any) -> int:
    """Coerce to a positive integer, defaulting to 1."""
    try:
        quantity = int(float(str(value).replace(",", ".")))
    except (TypeError, ValueError, OverflowError):
        return 1
    return quantity if quantity > 0 else 1


def is_pos_id(value: str) -> bool:
    """POS product ids are canonical UUIDs."""
    return bool(UUID_PATTERN.match(value))


def _first(entry: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = as_text(entry.get(key))
        if value:
            return value
    return ""


def _options_text(entry: dict[str, Any]) -> str:
    """Join Tilda ``options: [{option, variant}]`` into modifier text."""
    options = entry.get("options")
    if not isinstance(options, list):
        return ""
    variants = [
        as_text(opt.get("variant")) for opt in options if isinstance(opt, dict)
    ]
    return ", ".join(v for v in variants if v)


def _options_external_id(entry: dict[str, Any]) -> str:
    options = entry.get("options")
    if not isinstance(options, list):
        return ""
    for opt in options:
        if isinstance(opt, dict):
            external_id = _first(opt, ("externalid", "external_id", "externalId"))
            if external_id:
                return external_id
    return ""


def _parse_entry(entry: Any) -> ParsedLineItem | None:
    """Convert one structured product object to a ParsedLineItem."""
    if not isinstance(entry, dict):
        return None

    name = _first(entry, NAME_KEYS)
    modifier = _first(entry, MODIFIER_KEYS) or _options_text(entry)

    explicit_pos_id = _first(entry, POS_ID_KEYS)
    candidates = [
        explicit_pos_id,
        _first(entry, VARIANT_ID_KEYS) or _options_external_id(entry),
        _first(entry, PRODUCT_ID_KEYS),
        _first(entry, GENERIC_ID_KEYS),
    ]
    external_ids: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in external_ids:
            external_ids.append(candidate)

    pos_product_id = explicit_pos_id or next(
        (c for c in external_ids if is_pos_id(c)), None
    )

    return ParsedLineItem(
        name=name,
        modifier=modifier,
        weight_key=parse_weight_key(modifier),
        quantity=clamp_quantity(_first(entry, QUANTITY_KEYS) or 1),
        external_ids=tuple(external_ids),
        pos_product_id=pos_product_id or None,
        raw=json.dumps(entry, ensure_ascii=False, default=str),
    )


def _parse_line(part: str) -> ParsedLineItem:
    """Parse one ``name (modifier) - qty x price = total`` text line."""
    match = LINE_PATTERN.match(part)
    title = match.group(1).strip() if match else part
    quantity = clamp_quantity(match.group(2)) if match else 1

    name, modifier = title, ""
    parens = TRAILING_PARENS.match(title)
    if parens:
        name = parens.group(1).strip()
        modifier = parens.group(2).strip()

    return ParsedLineItem(
        name=name,
        modifier=modifier,
        weight_key=parse_weight_key(modifier),
        quantity=quantity,
        raw=part,
    )


def parse_products(products_raw: Any) -> list[ParsedLineItem]:
    """
    Parse a storefront product list.

    Args:
        products_raw: A list of product objects, a single object, JSON text
            encoding either, or a ``;``-delimited text blob.

    Returns:
        Parsed line items in input order; entries that are not objects are
        dropped from arrays.
    """
    if not products_raw:
        return []

    if isinstance(products_raw, dict):
        products_raw = [products_raw]
    if isinstance(products_raw, list):
        return [item for item in map(_parse_entry, products_raw) if item is not None]

    text = str(products_raw).strip()
    if not text:
        return []

    if text.startswith(("[", "{")):
        try:
            return parse_products(json.loads(text))
        except ValueError:
            pass

    parts = [p.strip() for p in re.split(r";\s*", text)]
    return [_parse_line(part) for part in parts if part]
