"""
Reconciliation engine - create-or-update against existing POS orders.

A paid order may reach us twice: once when the shopper submits the order and
again when the payment is confirmed. For paid orders we look for an existing
POS order with the same phone and external number and attach the payment to
it instead of creating a second order.

This is best-effort. The search endpoint is eventually consistent and there
is no lock around search-then-create, so two concurrent webhooks for the same
order can both miss each other and both create an order. Unpaid orders are
never searched; resubmitting one creates another POS order.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from bridge_schemas import (
    CanonicalOrder,
    POSOrderPayload,
    POSPayment,
    ReconciliationAction,
    ReconciliationOutcome,
    TenantConfig,
)

from apps.web.pos.adapters.base import POSAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchWindow:
    """How far around "now" the POS search looks for an existing order."""

    lookback: timedelta = timedelta(days=7)
    lookahead: timedelta = timedelta(days=1)

    def bounds(self, now: datetime) -> tuple[datetime, datetime]:
        return now - self.lookback, now + self.lookahead


def build_payment(tenant: TenantConfig, order: CanonicalOrder) -> POSPayment | None:
    """
    Build the payment entry for a paid order, or None when it does not apply.

    Requires a paid order, a positive total and a tenant payment type.
    """
    if not order.paid or not tenant.payment_type_id:
        return None
    total = order.total
    if total is None or total <= Decimal("0"):
        return None
    return POSPayment(
        payment_type_kind=tenant.payment_type_kind or "Card",
        sum=total,
        payment_type_id=tenant.payment_type_id,
        is_processed_externally=True,
    )


def _with_payment(payload: POSOrderPayload, payment: POSPayment) -> POSOrderPayload:
    order = payload.order.model_copy(update={"payments": [payment]})
    return payload.model_copy(update={"order": order})


def _created_order_id(response: dict) -> str | None:
    info = response.get("orderInfo")
    if isinstance(info, dict) and info.get("id"):
        return str(info["id"])
    return None


async def submit_order(
    adapter: POSAdapter,
    token: str,
    tenant: TenantConfig,
    order: CanonicalOrder,
    payload: POSOrderPayload,
    window: SearchWindow | None = None,
    now: datetime | None = None,
) -> ReconciliationOutcome:
    """
    Create the order in the POS, or update the payment of an existing one.

    Args:
        adapter: POS adapter.
        token: Bearer token for the tenant.
        tenant: Tenant the order belongs to.
        order: Canonical order (paid flag and total drive reconciliation).
        payload: Freshly built payload without payments.
        window: Search window around ``now``.
        now: Current time, injectable for tests.

    Raises:
        UpstreamPOSError: If any POS call fails.
    """
    if not order.paid or not tenant.payment_type_id:
        if order.paid:
            logger.info(
                "Paid order %s not reconciled: tenant has no payment type",
                payload.order.external_number,
            )
        response = await adapter.create_delivery(token, payload)
        return ReconciliationOutcome(
            action=ReconciliationAction.CREATED,
            pos_order_id=_created_order_id(response),
            response=response,
        )

    payment = build_payment(tenant, order)
    window = window or SearchWindow()
    date_from, date_to = window.bounds(now or datetime.now(UTC))
    external_number = payload.order.external_number

    existing = None
    if payload.order.phone:
        existing = await adapter.find_delivery(
            token,
            tenant.organization_id,
            payload.order.phone,
            external_number,
            date_from,
            date_to,
        )

    if existing is not None:
        if payment is None:
            logger.warning(
                "Paid order %s already in POS as %s but has no total, payment not attached",
                external_number,
                existing.id,
            )
            return ReconciliationOutcome(
                action=ReconciliationAction.EXISTING,
                pos_order_id=existing.id,
            )

        logger.info(
            "Found existing POS order %s for external number %s, updating payment",
            existing.id,
            external_number,
        )
        response = await adapter.change_payments(
            token, tenant.organization_id, existing.id, [payment]
        )
        return ReconciliationOutcome(
            action=ReconciliationAction.PAYMENT_UPDATED,
            pos_order_id=existing.id,
            response=response,
        )

    if payment is None:
        logger.info("Paid order %s has no total, created without payment", external_number)
        response = await adapter.create_delivery(token, payload)
    else:
        response = await adapter.create_delivery(token, _with_payment(payload, payment))
    return ReconciliationOutcome(
        action=ReconciliationAction.CREATED,
        pos_order_id=_created_order_id(response),
        response=response,
    )
