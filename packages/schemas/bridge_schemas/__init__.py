"""Bridge Schemas - Pydantic models for data contracts."""

from bridge_schemas.orders import (
    BodyKind,
    CanonicalOrder,
    CatalogMapping,
    ParsedBody,
    ParsedLineItem,
    RawOrderRequest,
    UnmappedItem,
)
from bridge_schemas.pos import (
    CachedToken,
    ExistingPOSOrder,
    OrderServiceType,
    POSCustomer,
    POSDeliveryPoint,
    POSOrder,
    POSOrderItem,
    POSOrderItemModifier,
    POSOrderPayload,
    POSPayment,
    ReconciliationAction,
    ReconciliationOutcome,
)
from bridge_schemas.tenants import TenantConfig, TenantRegistry
from bridge_schemas.webhooks import (
    PaymentIntent,
    StorefrontPaymentNotification,
    WebhookKind,
)

__all__ = [
    # Tenants
    "TenantConfig",
    "TenantRegistry",
    # Orders
    "BodyKind",
    "CanonicalOrder",
    "CatalogMapping",
    "ParsedBody",
    "ParsedLineItem",
    "RawOrderRequest",
    "UnmappedItem",
    # POS
    "CachedToken",
    "ExistingPOSOrder",
    "OrderServiceType",
    "POSCustomer",
    "POSDeliveryPoint",
    "POSOrder",
    "POSOrderItem",
    "POSOrderItemModifier",
    "POSOrderPayload",
    "POSPayment",
    "ReconciliationAction",
    "ReconciliationOutcome",
    # Webhooks
    "PaymentIntent",
    "StorefrontPaymentNotification",
    "WebhookKind",
]
