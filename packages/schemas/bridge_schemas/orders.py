"""Order schemas - normalized storefront orders and catalog mappings."""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BodyKind(str, Enum):
    """How an inbound request body was decoded."""

    JSON = "json"
    FORM = "form"
    EMPTY = "empty"


class ParsedBody(BaseModel):
    """Inbound body normalized to a single key-value map."""

    model_config = ConfigDict(frozen=True)

    kind: BodyKind
    data: dict[str, Any] = Field(default_factory=dict)


class RawOrderRequest(BaseModel):
    """An inbound webhook request as it arrived, before any normalization."""

    body: bytes | dict[str, Any] = b""
    query: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)

    def header(self, name: str) -> str:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return ""


class CanonicalOrder(BaseModel):
    """Normalized view of a storefront order request."""

    model_config = ConfigDict(frozen=True)

    # Customer
    name: str = ""
    phone: str = ""
    email: str = ""

    # Fulfillment
    delivery_type: str = ""
    address: str = ""
    apartment: str = ""
    address_city: str = ""
    delivery_date: str = ""
    delivery_time: str = ""
    messenger: str = ""

    # Order
    products_raw: Any = None
    total: Decimal | None = None
    order_id: str = ""
    payment_id: str = ""
    paid: bool = False

    # Routing hints
    city_hint: str = ""
    project_id: str = ""
    page_id: str = ""
    referer: str = ""
    callback_url: str = ""


class ParsedLineItem(BaseModel):
    """One product line parsed from the storefront product list."""

    model_config = ConfigDict(frozen=True)

    name: str
    modifier: str = ""
    weight_key: str = ""
    quantity: int = Field(default=1, ge=1)
    external_ids: tuple[str, ...] = ()
    pos_product_id: str | None = None
    raw: str = ""


class CatalogMapping(BaseModel):
    """Binds a storefront product identity to a POS product."""

    model_config = ConfigDict(frozen=True)

    city: str
    storefront_product_id: str = ""
    name: str = ""
    modifier: str = ""
    pos_product_id: str = ""
    pos_modifier_id: str = ""


class UnmappedItem(BaseModel):
    """A parsed line that could not be matched to the POS catalog."""

    name: str
    modifier_text: str = Field(default="", serialization_alias="modifierText")
    raw: str = ""
