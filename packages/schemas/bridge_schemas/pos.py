"""POS integration schemas - iiko Cloud API data contracts."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

# =============================================================================
# Enums
# =============================================================================


class OrderServiceType(str, Enum):
    """Order fulfillment type, as named by iiko."""

    PICKUP = "Pickup"
    COURIER = "DeliveryByCourier"


class ReconciliationAction(str, Enum):
    """What the reconciliation engine ended up doing with an order."""

    CREATED = "created"
    PAYMENT_UPDATED = "payment_updated"
    # Paid order already in the POS, but no amount to attach as a payment
    EXISTING = "existing"


# =============================================================================
# Authentication
# =============================================================================


class CachedToken(BaseModel):
    """POS bearer token with the moment it stops being served from cache."""

    access_token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


# =============================================================================
# Orders
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class POSOrderItemModifier(_CamelModel):
    """Modifier attached to a line item."""

    product_id: str = Field(alias="productId")
    amount: int = 1


class POSOrderItem(_CamelModel):
    """Line item in a POS order."""

    type: str = "Product"
    product_id: str = Field(alias="productId")
    amount: int = Field(default=1, ge=1)
    modifiers: list[POSOrderItemModifier] | None = None


class POSPayment(_CamelModel):
    """Payment entry applied to a POS order."""

    payment_type_kind: str = Field(alias="paymentTypeKind")
    sum: Decimal
    payment_type_id: str = Field(alias="paymentTypeId")
    is_processed_externally: bool = Field(default=True, alias="isProcessedExternally")

    @field_serializer("sum")
    def _serialize_sum(self, value: Decimal) -> float:
        return float(value)


class POSCustomer(_CamelModel):
    name: str


class POSDeliveryPoint(_CamelModel):
    comment: str


class POSOrder(_CamelModel):
    """The `order` object inside a delivery creation request."""

    external_number: str = Field(alias="externalNumber", max_length=50)
    order_service_type: OrderServiceType = Field(alias="orderServiceType")
    phone: str
    customer: POSCustomer
    comment: str = ""
    items: list[POSOrderItem] = Field(min_length=1)
    payments: list[POSPayment] | None = None
    delivery_point: POSDeliveryPoint | None = Field(default=None, alias="deliveryPoint")


class POSOrderPayload(_CamelModel):
    """Full delivery creation request submitted to the POS."""

    organization_id: str = Field(alias="organizationId")
    terminal_group_id: str = Field(alias="terminalGroupId")
    order: POSOrder

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape the POS expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExistingPOSOrder(BaseModel):
    """An order returned by the POS search endpoint."""

    id: str
    external_number: str = ""
    status: str = ""


class ReconciliationOutcome(BaseModel):
    """Result of submitting an order through the reconciliation engine."""

    action: ReconciliationAction
    pos_order_id: str | None = None
    response: dict[str, Any] = Field(default_factory=dict)
