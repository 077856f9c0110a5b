"""
Payment services - Ziina gateway and the Tilda payment-notification relay.

Provides:
- Payment intent creation (shopper is redirected to the gateway's page)
- Gateway webhook signature verification
- Signed "order paid" notification relayed back to the storefront
- Synthesized order fields for forwarding a paid intent into the order pipeline
"""

import hashlib
import hmac
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.conf import settings

import httpx
from bridge_schemas import PaymentIntent, StorefrontPaymentNotification

logger = logging.getLogger(__name__)

ZIINA_API_URL = "https://api-v2.ziina.com/api"
PAYMENT_INTENT_PATH = "/payment_intent"
DEFAULT_TIMEOUT = 15.0

STOREFRONT_PAID_STATE = "paid"
DEFAULT_STOREFRONT_LOGIN = "ziina_shop"


class PaymentError(Exception):
    """Error during payment processing."""

    def __init__(
        self, message: str, code: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


# =============================================================================
# Gateway
# =============================================================================


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (e.g. 15.50 AED) to minor units (1550 fils)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_payment_intent(
    amount: Decimal,
    currency: str = "AED",
    success_url: str = "",
    cancel_url: str = "",
    metadata: dict[str, Any] | None = None,
    http_client: httpx.Client | None = None,
) -> dict[str, Any]:
    """
    Create a Ziina payment intent.

    Args:
        amount: Amount in major units (converted to minor units)
        currency: ISO currency code
        success_url: Where the gateway sends the shopper after paying
        cancel_url: Where the gateway sends the shopper on cancel
        metadata: Storefront order context echoed back in webhooks

    Returns:
        Decoded payment intent, including ``redirect_url``

    Raises:
        PaymentError: If the token is missing or the gateway call fails
    """
    token = getattr(settings, "ZIINA_API_TOKEN", "")
    if not token:
        raise PaymentError("Payment gateway token is not configured", code="config")

    body = {
        "amount": to_minor_units(amount),
        "currency_code": currency,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata or {},
    }

    client = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)
    try:
        response = client.post(
            f"{ZIINA_API_URL}{PAYMENT_INTENT_PATH}",
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )
    except httpx.RequestError as e:
        raise PaymentError(f"Payment gateway unreachable: {e}", code="network") from e
    finally:
        if http_client is None:
            client.close()

    if response.status_code >= 400:
        logger.warning(
            "Payment intent creation failed: status=%s body=%s",
            response.status_code,
            response.text[:500],
        )
        raise PaymentError(
            "Payment gateway rejected the request",
            code="gateway",
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise PaymentError("Payment gateway returned invalid JSON", code="gateway") from e


def verify_gateway_signature(body: bytes, signature: str, secret: str) -> bool:
    """
    Check a gateway webhook HMAC-SHA256 signature.

    No configured secret means signatures are not enforced.
    """
    if not secret:
        return True
    if not signature:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())


def extract_payment_intent(data: dict[str, Any]) -> PaymentIntent:
    """Pull the payment intent out of a gateway event body."""
    if isinstance(data.get("payment_intent"), dict):
        raw = data["payment_intent"]
    elif isinstance(data.get("data"), dict):
        raw = data["data"]
    else:
        raw = data

    metadata = raw.get("metadata")
    return PaymentIntent(
        id=str(raw.get("id") or ""),
        status=str(raw.get("status") or ""),
        amount=raw.get("amount") if isinstance(raw.get("amount"), int) else None,
        currency_code=raw.get("currency_code"),
        metadata=metadata if isinstance(metadata, dict) else {},
    )


# =============================================================================
# Storefront relay
# =============================================================================


def storefront_signature(
    login: str, amount: str, order_id: str, payment_id: str, state: str, secret: str
) -> str:
    """md5(login + amount + orderid + paymentid + state + secret), as Tilda expects."""
    raw = f"{login}{amount}{order_id}{payment_id}{state}{secret}"
    return hashlib.md5(raw.encode()).hexdigest()


def intent_amount(intent: PaymentIntent) -> str:
    """Storefront-facing amount: the original string if we stored one."""
    stored = intent.metadata.get("tilda_amount")
    if stored:
        return str(stored)
    if intent.amount is None:
        return ""
    return str(Decimal(intent.amount) / 100)


def build_storefront_notification(intent: PaymentIntent) -> StorefrontPaymentNotification:
    login = getattr(settings, "TILDA_LOGIN", "") or DEFAULT_STOREFRONT_LOGIN
    secret = getattr(settings, "TILDA_SECRET", "")
    if not secret:
        logger.error("TILDA_SECRET is not configured, notification signature is weak")

    order_id = str(intent.metadata.get("tilda_order_id", ""))
    amount = intent_amount(intent)
    return StorefrontPaymentNotification(
        payment_system=login,
        order_id=order_id,
        amount=amount,
        payment_id=intent.id,
        state=STOREFRONT_PAID_STATE,
        signature=storefront_signature(
            login, amount, order_id, intent.id, STOREFRONT_PAID_STATE, secret
        ),
    )


def relay_to_storefront(
    intent: PaymentIntent, http_client: httpx.Client | None = None
) -> int:
    """
    Send a signed payment confirmation to the storefront.

    The target is the callback URL captured at payment initiation, falling back
    to ``TILDA_NOTIFICATION_URL``.

    Returns:
        Storefront response status code

    Raises:
        PaymentError: If no target is known or the storefront call fails
    """
    url = intent.metadata.get("tilda_callback_url") or getattr(
        settings, "TILDA_NOTIFICATION_URL", ""
    )
    if not url:
        raise PaymentError("No storefront notification URL", code="config")

    notification = build_storefront_notification(intent)
    logger.info(
        "Relaying payment %s for storefront order %s to %s",
        notification.payment_id,
        notification.order_id,
        url,
    )

    client = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)
    try:
        response = client.post(url, json=notification.model_dump())
    except httpx.RequestError as e:
        raise PaymentError(f"Storefront unreachable: {e}", code="network") from e
    finally:
        if http_client is None:
            client.close()

    if response.status_code >= 400:
        raise PaymentError(
            f"Storefront rejected notification: {response.text[:200]}",
            code="storefront",
            status_code=response.status_code,
        )
    return response.status_code


# =============================================================================
# Order forwarding
# =============================================================================


def order_fields_from_intent(intent: PaymentIntent) -> dict[str, Any]:
    """
    Order webhook fields for a paid payment intent.

    The storefront order id becomes the external number, so the order pipeline
    finds the order created at checkout and attaches the payment to it.
    """
    metadata = intent.metadata
    fields: dict[str, Any] = {
        "orderid": str(metadata.get("tilda_order_id", "")),
        "paymentid": intent.id,
        "amount": intent_amount(intent),
        "name": metadata.get("customer_name") or "",
        "email": metadata.get("customer_email") or "",
        "phone": metadata.get("customer_phone") or "",
        "payment_status": STOREFRONT_PAID_STATE,
    }
    for key in ("products", "city", "projectid", "pageid"):
        if metadata.get(key):
            fields[key] = metadata[key]
    return fields
