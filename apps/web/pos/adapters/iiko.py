"""iiko POS adapter - integration with the iiko Cloud (Transport) API."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from bridge_schemas import (
    CachedToken,
    ExistingPOSOrder,
    POSOrderPayload,
    POSPayment,
    TenantConfig,
)

from apps.web.pos.cache import CacheStore
from apps.web.pos.exceptions import POSAuthError, UpstreamPOSError

logger = logging.getLogger(__name__)


def format_pos_datetime(value: datetime) -> str:
    """Format a datetime the way iiko expects: ``yyyy-MM-dd HH:mm:ss.fff``."""
    return value.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


class IikoAdapter:
    """
    iiko adapter implementing the POSAdapter protocol.

    Integrates with iiko Cloud API for:
    - Access tokens (apiLogin -> bearer token), cached per base URL + login
    - Delivery creation
    - Delivery search by phone and date window
    - Payment updates on existing deliveries

    API Reference: https://api-ru.iiko.services/
    """

    DEFAULT_BASE_URL = "https://api-ru.iiko.services"
    TOKEN_PATH = "/api/1/access_token"
    CREATE_PATH = "/api/1/deliveries/create"
    SEARCH_PATH = "/api/1/deliveries/by_delivery_date_and_phone"
    CHANGE_PAYMENTS_PATH = "/api/1/deliveries/change_payments"

    SEARCH_ROWS = 50

    # iiko tokens live for an hour; we stop using them 10 minutes early
    TOKEN_LIFETIME_SECONDS = 3600
    TOKEN_SAFETY_MARGIN_SECONDS = 600

    def __init__(
        self,
        cache: CacheStore,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        token_timeout: float = 15.0,
        order_timeout: float = 20.0,
        token_lifetime: int = TOKEN_LIFETIME_SECONDS,
        token_safety_margin: int = TOKEN_SAFETY_MARGIN_SECONDS,
    ) -> None:
        """
        Initialize the iiko adapter.

        Args:
            cache: Process-wide cache store holding tokens.
            base_url: iiko API root.
            http_client: Optional HTTP client for dependency injection (testing).
            token_timeout: Timeout for token requests, seconds.
            order_timeout: Timeout for order search/create/update, seconds.
            token_lifetime: Lifetime of an iiko token, seconds.
            token_safety_margin: How long before expiry a token stops being reused.
        """
        self.base_url = base_url.rstrip("/")
        self._cache = cache
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None
        self.token_timeout = token_timeout
        self.order_timeout = order_timeout
        self.token_validity = timedelta(
            seconds=max(token_lifetime - token_safety_margin, 0)
        )

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def provider(self) -> str:
        return "iiko"

    # =========================================================================
    # Authentication
    # =========================================================================

    async def get_token(self, tenant: TenantConfig) -> str:
        """
        Return a bearer token for the tenant's apiLogin.

        A cached token is reused until its validity window ends. On a miss the
        token is fetched synchronously; there is no retry.

        Raises:
            POSAuthError: If the request fails or the response has no token.
        """
        key = CacheStore.token_key(self.base_url, tenant.api_login)
        now = datetime.now(UTC)
        cached = self._cache.get_token(key, now)
        if cached:
            return cached

        try:
            response = await self._client.post(
                f"{self.base_url}{self.TOKEN_PATH}",
                json={"apiLogin": tenant.api_login},
                timeout=self.token_timeout,
            )
        except httpx.RequestError as e:
            raise POSAuthError(
                f"iiko token request failed: {e}",
                provider="iiko",
            ) from e

        if response.is_error:
            raise POSAuthError(
                f"iiko token request failed: {response.status_code}",
                provider="iiko",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise POSAuthError(
                "iiko token response is not JSON",
                provider="iiko",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        token = ""
        if isinstance(data, dict):
            token = data.get("token") or data.get("accessToken") or data.get(
                "access_token", ""
            )
        if not token:
            raise POSAuthError("iiko access token missing in response", provider="iiko")

        self._cache.put_token(
            key, CachedToken(access_token=token, expires_at=now + self.token_validity)
        )
        logger.info("Fetched iiko token for tenant %s", tenant.key)
        return str(token)

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _post(self, path: str, token: str, payload: dict[str, Any]) -> Any:
        """
        POST JSON with bearer auth and return the decoded response body.

        Raises:
            UpstreamPOSError: On network failure, timeout or non-2xx status.
        """
        try:
            response = await self._client.post(
                f"{self.base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.order_timeout,
            )
        except httpx.RequestError as e:
            raise UpstreamPOSError(
                f"iiko request to {path} failed: {e}",
                provider="iiko",
            ) from e

        if response.is_error:
            logger.warning(
                "iiko %s returned %d: %s", path, response.status_code, response.text
            )
            raise UpstreamPOSError(
                f"iiko request to {path} failed: {response.status_code}",
                provider="iiko",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            return response.json()
        except ValueError:
            return {}

    # =========================================================================
    # Order Operations
    # =========================================================================

    async def create_delivery(
        self, token: str, payload: POSOrderPayload
    ) -> dict[str, Any]:
        """Create a delivery or pickup order in iiko."""
        data = await self._post(self.CREATE_PATH, token, payload.to_wire())
        return data if isinstance(data, dict) else {"response": data}

    async def find_delivery(
        self,
        token: str,
        organization_id: str,
        phone: str,
        external_number: str,
        date_from: datetime,
        date_to: datetime,
    ) -> ExistingPOSOrder | None:
        """
        Search deliveries by phone within a date window, matching externalNumber.

        The search endpoint is eventually consistent: an order created a few
        seconds ago may not be visible yet.
        """
        data = await self._post(
            self.SEARCH_PATH,
            token,
            {
                "phone": phone,
                "deliveryDateFrom": format_pos_datetime(date_from),
                "deliveryDateTo": format_pos_datetime(date_to),
                "organizationIds": [organization_id],
                "rowsCount": self.SEARCH_ROWS,
            },
        )

        groups = data.get("ordersByOrganizations") if isinstance(data, dict) else None
        for group in groups or []:
            if not isinstance(group, dict):
                continue
            for raw in group.get("orders") or []:
                found = self._parse_existing_order(raw)
                if found and found.external_number == external_number:
                    return found
        return None

    async def change_payments(
        self,
        token: str,
        organization_id: str,
        order_id: str,
        payments: list[POSPayment],
    ) -> dict[str, Any]:
        """Replace payments on an existing iiko delivery."""
        data = await self._post(
            self.CHANGE_PAYMENTS_PATH,
            token,
            {
                "organizationId": organization_id,
                "orderId": order_id,
                "payments": [
                    p.model_dump(mode="json", by_alias=True) for p in payments
                ],
            },
        )
        return data if isinstance(data, dict) else {"response": data}

    # =========================================================================
    # Parsing Helpers
    # =========================================================================

    def _parse_existing_order(self, raw: Any) -> ExistingPOSOrder | None:
        """Convert an iiko search result entry to ExistingPOSOrder."""
        if not isinstance(raw, dict) or not raw.get("id"):
            return None
        # externalNumber lives at the top level or inside the nested order
        nested = raw.get("order") if isinstance(raw.get("order"), dict) else {}
        external_number = raw.get("externalNumber") or nested.get("externalNumber")
        return ExistingPOSOrder(
            id=str(raw["id"]),
            external_number=str(external_number or ""),
            status=str(raw.get("creationStatus") or nested.get("status") or ""),
        )
