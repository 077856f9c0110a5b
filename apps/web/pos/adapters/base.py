"""Base POS adapter protocol - interface the order pipeline talks to."""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from bridge_schemas import ExistingPOSOrder, POSOrderPayload, POSPayment, TenantConfig


@runtime_checkable
class POSAdapter(Protocol):
    """
    Protocol defining the interface for POS integrations.

    Methods are async to support non-blocking I/O with external APIs.
    None of them retry; failures surface as UpstreamPOSError and the webhook
    sender is expected to redeliver.
    """

    async def get_token(self, tenant: TenantConfig) -> str:
        """
        Return a bearer token for the tenant, from cache when still valid.

        Raises:
            POSAuthError: If the token endpoint fails or returns no token.
        """
        ...

    async def create_delivery(
        self, token: str, payload: POSOrderPayload
    ) -> dict[str, Any]:
        """
        Create a delivery/pickup order.

        Returns:
            The POS response body.

        Raises:
            UpstreamPOSError: If the API request fails.
        """
        ...

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
        Look up an existing order by customer phone and external number.

        Raises:
            UpstreamPOSError: If the API request fails.
        """
        ...

    async def change_payments(
        self,
        token: str,
        organization_id: str,
        order_id: str,
        payments: list[POSPayment],
    ) -> dict[str, Any]:
        """
        Replace the payments of an existing order.

        Raises:
            UpstreamPOSError: If the API request fails.
        """
        ...

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        ...
