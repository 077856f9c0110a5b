"""
Order webhook view.

POST /webhooks/tilda-iiko
"""

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from bridge_schemas import RawOrderRequest

from apps.web.core.decorators import webhook_entry
from apps.web.orders.services import handle_order_webhook


def raw_request(request: HttpRequest) -> RawOrderRequest:
    """Capture the parts of a Django request the order pipeline reads."""
    return RawOrderRequest(
        body=request.body,
        query={key: request.GET.get(key, "") for key in request.GET},
        headers=dict(request.headers),
    )


@csrf_exempt
@webhook_entry
def order_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive a storefront order and submit it to the POS.

    Responses:
    - 200: probe acknowledged, or order created / payment attached
    - 400: malformed body, unknown tenant, nothing mapped
    - 401: shared secret mismatch
    - 502: catalog source unavailable
    - upstream status (or 500): POS call failed
    """
    request_id: str = request.request_id  # type: ignore[attr-defined]
    result = handle_order_webhook(raw_request(request), request_id)
    return JsonResponse(result.payload, status=result.status)
