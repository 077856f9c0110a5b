"""
Payment webhook handlers.

Handles:
- Ziina payment intent events: relay "paid" to the storefront, optionally
  forward the paid order into the POS order pipeline
- Storefront order bodies posted to the payment endpoint: optionally forward
  into the POS order pipeline
- Payment initiation: create a payment intent and redirect the shopper
"""

import json
import logging
from typing import Any

from django.conf import settings
from django.http import (
    HttpRequest,
    HttpResponse,
    HttpResponseRedirect,
    JsonResponse,
)
from django.views.decorators.csrf import csrf_exempt

from bridge_schemas import PaymentIntent, RawOrderRequest, WebhookKind

from apps.web.core.decorators import webhook_entry
from apps.web.core.exceptions import ValidationError
from apps.web.orders.body import parse_body
from apps.web.orders.fields import (
    CALLBACK_URL_KEYS,
    EMAIL_KEYS,
    NAME_KEYS,
    ORDER_ID_KEYS,
    PAYMENT_ID_KEYS,
    PHONE_KEYS,
    first_text,
    parse_amount,
)
from apps.web.orders.services import handle_order_webhook
from apps.web.orders.views import raw_request
from apps.web.payments.classifier import classify_webhook
from apps.web.payments.services import (
    PaymentError,
    create_payment_intent,
    extract_payment_intent,
    order_fields_from_intent,
    relay_to_storefront,
    verify_gateway_signature,
)

logger = logging.getLogger(__name__)

INIT_AMOUNT_KEYS = ("amount", "AMOUNT")


class HttpResponseSeeOther(HttpResponseRedirect):
    status_code = 303


def _forward_to_order_pipeline(
    raw: RawOrderRequest, request_id: str, check_secret: bool
) -> dict[str, Any]:
    """
    Run the order pipeline in-process; failures are reported, never raised.

    Only fields synthesized from a verified gateway intent skip the shared
    secret check. Request bodies from outside are checked like the order
    webhook checks them.
    """
    try:
        result = handle_order_webhook(raw, request_id, check_secret=check_secret)
    except Exception:
        logger.exception("[%s] Forwarding to order pipeline failed", request_id)
        return {"status": 500}

    if result.ok:
        logger.info("[%s] Forwarded order accepted: %s", request_id, result.payload.get("action"))
    else:
        logger.warning(
            "[%s] Forwarded order rejected: status=%s error=%s",
            request_id,
            result.status,
            result.payload.get("error"),
        )
    return {"status": result.status, **result.payload}


def _handle_payment_succeeded(
    intent: PaymentIntent, request: HttpRequest, request_id: str
) -> dict[str, Any]:
    """Forward and relay a completed payment."""
    outcome: dict[str, Any] = {}

    if getattr(settings, "PAYMENT_CREATES_POS_ORDER", False):
        if intent.metadata.get("tilda_order_id"):
            raw = RawOrderRequest(
                body=order_fields_from_intent(intent),
                query={key: request.GET.get(key, "") for key in request.GET},
                headers={},
            )
            outcome["forwarded"] = _forward_to_order_pipeline(
                raw, request_id, check_secret=False
            )
        else:
            logger.info(
                "[%s] Paid intent %s has no storefront order, not forwarded",
                request_id,
                intent.id,
            )

    if intent.metadata.get("tilda_order_id"):
        try:
            outcome["relayStatus"] = relay_to_storefront(intent)
        except PaymentError as e:
            logger.error(
                "[%s] Storefront relay failed for %s: %s (status=%s)",
                request_id,
                intent.id,
                e.message,
                e.status_code,
            )
            outcome["relayError"] = e.message
    else:
        logger.info("[%s] No storefront order id in metadata, relay skipped", request_id)

    return outcome


@csrf_exempt
@webhook_entry
def payment_webhook(request: HttpRequest) -> HttpResponse:
    """
    Handle payment notifications.

    POST /webhooks/payment

    Always answers 200 once the body is decoded; forwarding and relay
    failures are only logged. An undecodable body is a 500.
    """
    request_id: str = request.request_id  # type: ignore[attr-defined]

    try:
        parsed = parse_body(request.body)
    except ValidationError as e:
        logger.warning("[%s] Unparseable payment webhook: %s", request_id, e.message)
        return JsonResponse(
            {"ok": False, "requestId": request_id, "error": e.message}, status=500
        )

    headers = dict(request.headers)
    kind = classify_webhook(parsed.data, headers)
    logger.info("[%s] Payment webhook classified as %s", request_id, kind.value)

    match kind:
        case WebhookKind.PROBE:
            return JsonResponse({"ok": True, "requestId": request_id, "probe": True})

        case WebhookKind.GATEWAY_EVENT:
            signature = request.headers.get("X-Hmac-Signature", "")
            secret = getattr(settings, "ZIINA_WEBHOOK_SECRET", "")
            if not verify_gateway_signature(request.body, signature, secret):
                logger.warning("[%s] Invalid gateway signature, event ignored", request_id)
                return JsonResponse({"ok": True, "requestId": request_id, "ignored": True})

            intent = extract_payment_intent(parsed.data)
            if not intent.succeeded:
                logger.info(
                    "[%s] Payment intent %s status %s, nothing to do",
                    request_id,
                    intent.id,
                    intent.status,
                )
                return JsonResponse({"ok": True, "requestId": request_id, "status": intent.status})

            outcome = _handle_payment_succeeded(intent, request, request_id)
            return JsonResponse({"ok": True, "requestId": request_id, **outcome})

        case WebhookKind.STOREFRONT_ORDER:
            if not getattr(settings, "PAYMENT_CREATES_POS_ORDER", False):
                logger.info("[%s] Order forwarding disabled, acknowledged only", request_id)
                return JsonResponse({"ok": True, "requestId": request_id})
            forwarded = _forward_to_order_pipeline(
                raw_request(request), request_id, check_secret=True
            )
            return JsonResponse({"ok": True, "requestId": request_id, "forwarded": forwarded})

        case _:
            logger.info(
                "[%s] Unrecognized payment webhook keys: %s", request_id, sorted(parsed.data)
            )
            return JsonResponse({"ok": True, "requestId": request_id})


def _base_url(request: HttpRequest) -> str:
    protocol = request.headers.get("X-Forwarded-Proto", "https")
    host = request.headers.get("X-Forwarded-Host") or request.get_host()
    return f"{protocol}://{host}"


@csrf_exempt
@webhook_entry
def init_payment(request: HttpRequest) -> HttpResponse:
    """
    Start a gateway payment for a storefront order.

    POST /payments/init

    Redirects (303) to the gateway's payment page.
    """
    request_id: str = request.request_id  # type: ignore[attr-defined]

    try:
        data = parse_body(request.body).data
    except ValidationError as e:
        return HttpResponse(e.message, status=400)

    logger.info("[%s] Payment init request keys: %s", request_id, sorted(data))

    amount_text = first_text(data, INIT_AMOUNT_KEYS)
    amount = parse_amount(amount_text)
    if amount is None:
        logger.warning("[%s] Payment init without amount", request_id)
        return HttpResponse("Missing amount", status=400)

    order_id = first_text(data, ORDER_ID_KEYS)
    if not order_id:
        logger.warning("[%s] Payment init without order id", request_id)
        return HttpResponse("Missing orderid", status=400)

    base_url = _base_url(request)
    metadata = {
        "tilda_order_id": order_id,
        "tilda_payment_id": first_text(data, PAYMENT_ID_KEYS) or "manual",
        "tilda_amount": amount_text,
        "customer_name": first_text(data, NAME_KEYS),
        "customer_email": first_text(data, EMAIL_KEYS),
        "customer_phone": first_text(data, PHONE_KEYS),
        "tilda_callback_url": first_text(data, CALLBACK_URL_KEYS),
    }

    try:
        intent = create_payment_intent(
            amount,
            currency=getattr(settings, "PAYMENT_CURRENCY", "AED"),
            success_url=getattr(settings, "ZIINA_SUCCESS_URL", "") or f"{base_url}/ordersuccess",
            cancel_url=getattr(settings, "ZIINA_CANCEL_URL", "") or f"{base_url}/orderfailed",
            metadata=metadata,
        )
    except PaymentError as e:
        logger.error("[%s] Payment intent creation failed: %s", request_id, e.message)
        return HttpResponse(f"Failed to initiate payment: {e.message}", status=500)

    redirect_url = intent.get("redirect_url") if isinstance(intent, dict) else None
    if not redirect_url:
        logger.error(
            "[%s] Gateway response missing redirect_url: %s",
            request_id,
            json.dumps(intent)[:500],
        )
        return HttpResponse("Failed to initiate payment: No redirect URL", status=500)

    logger.info(
        "[%s] Payment intent %s created for order %s", request_id, intent.get("id"), order_id
    )
    return HttpResponseSeeOther(redirect_url)
