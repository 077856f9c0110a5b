"""
Decorators for webhook request handling.
"""

import logging
import secrets
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return secrets.token_hex(8)


def webhook_entry(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator for public webhook entry points.

    - Non-POST requests get 405
    - ``request.request_id`` is set for log correlation
    - Unexpected exceptions become a 500 carrying only the request id

    Usage:
        @csrf_exempt
        @webhook_entry
        def order_webhook(request):
            ...
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        if request.method != "POST":
            return HttpResponse("Method Not Allowed", status=405, headers={"Allow": "POST"})

        request_id = new_request_id()
        request.request_id = request_id  # type: ignore[attr-defined]

        try:
            return view_func(request, *args, **kwargs)
        except Exception:
            logger.exception("[%s] Unhandled error in %s", request_id, view_func.__name__)
            return JsonResponse(
                {"ok": False, "requestId": request_id, "error": "Internal Server Error"},
                status=500,
            )

    return wrapper
