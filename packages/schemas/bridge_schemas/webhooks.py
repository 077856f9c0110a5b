"""Webhook payload schemas for the payment gateway and the storefront."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# =============================================================================
# Classification
# =============================================================================


class WebhookKind(str, Enum):
    """Shape of a request arriving at the payment-notification endpoint."""

    PROBE = "probe"
    GATEWAY_EVENT = "gateway_event"
    STOREFRONT_ORDER = "storefront_order"
    UNKNOWN = "unknown"


# =============================================================================
# Ziina (payment gateway)
# =============================================================================


class PaymentIntent(BaseModel):
    """Ziina payment intent, as delivered in webhooks."""

    id: str = ""
    status: str = ""
    amount: int | None = Field(default=None, description="Minor currency units")
    currency_code: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status in ("completed", "succeeded")


# =============================================================================
# Tilda (storefront)
# =============================================================================


class StorefrontPaymentNotification(BaseModel):
    """Signed payment confirmation relayed to the storefront."""

    payment_system: str
    order_id: str
    amount: str
    payment_id: str
    state: str = "paid"
    signature: str
