"""Tests for payment webhook handlers."""

import hashlib
import hmac
import json
from unittest.mock import patch

from django.test import Client, SimpleTestCase, override_settings

import httpx
import respx

from apps.web.core.tests.factories import (
    CATALOG_ROWS,
    CITIES_CONFIG,
    IIKO_BASE_URL,
    order_body,
)
from apps.web.orders.services import OrderWebhookResult
from apps.web.payments.services import ZIINA_API_URL, storefront_signature
from apps.web.pos.adapters.iiko import IikoAdapter

CALLBACK_URL = "https://shop.example.com/payment-callback"
INTENT_URL = f"{ZIINA_API_URL}/payment_intent"

TOKEN_URL = f"{IIKO_BASE_URL}{IikoAdapter.TOKEN_PATH}"
SEARCH_URL = f"{IIKO_BASE_URL}{IikoAdapter.SEARCH_PATH}"
CREATE_URL = f"{IIKO_BASE_URL}{IikoAdapter.CREATE_PATH}"

ORDER_SETTINGS = {
    "IIKO_BASE_URL": IIKO_BASE_URL,
    "TILDA_IIKO_MAPPING_MODE": "env",
    "TILDA_IIKO_MAPPING_JSON": CATALOG_ROWS,
    "TILDA_WEBHOOK_SECRET": "s3cret",
}

PAYMENT_SETTINGS = {
    "TILDA_IIKO_CITIES": CITIES_CONFIG,
    "TILDA_LOGIN": "ziina_shop",
    "TILDA_SECRET": "tilda-secret",
    "TILDA_NOTIFICATION_URL": CALLBACK_URL,
    "ZIINA_API_TOKEN": "ziina-token",
    "ZIINA_WEBHOOK_SECRET": "",
    "ZIINA_SUCCESS_URL": "",
    "ZIINA_CANCEL_URL": "",
    "PAYMENT_CURRENCY": "AED",
    "PAYMENT_CREATES_POS_ORDER": False,
}


def gateway_event(status: str = "completed", **metadata) -> dict:
    return {
        "event": "payment_intent.status.updated",
        "data": {
            "id": "pi_123",
            "status": status,
            "amount": 1550,
            "currency_code": "AED",
            "metadata": {"tilda_order_id": "123", "tilda_amount": "15.50", **metadata},
        },
    }


def forwarded_ok() -> OrderWebhookResult:
    return OrderWebhookResult(
        status=200, payload={"ok": True, "requestId": "r", "action": "payment_updated"}
    )


@override_settings(**PAYMENT_SETTINGS)
class TestPaymentWebhook(SimpleTestCase):
    """Tests for the payment notification endpoint."""

    def setUp(self):
        self.http_client = Client()
        self.url = "/webhooks/payment"

    def _post(self, body, **extra):
        payload = body if isinstance(body, str | bytes) else json.dumps(body)
        return self.http_client.post(
            self.url, data=payload, content_type="application/json", **extra
        )

    def test_get_not_allowed(self):
        response = self.http_client.get(self.url)

        self.assertEqual(response.status_code, 405)

    def test_probe(self):
        response = self._post({"test": "test"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["probe"])

    def test_unparseable_body(self):
        response = self._post(b"\xff\xfe")

        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.json()["ok"])

    def test_pending_intent_acknowledged(self):
        with patch("apps.web.payments.webhooks.relay_to_storefront") as mock_relay:
            response = self._post(gateway_event(status="pending"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "pending")
        mock_relay.assert_not_called()

    @respx.mock
    def test_completed_intent_relayed_with_signature(self):
        route = respx.post(CALLBACK_URL).mock(return_value=httpx.Response(200, text="OK"))

        response = self._post(gateway_event())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["relayStatus"], 200)
        sent = json.loads(route.calls.last.request.content)
        self.assertEqual(sent["order_id"], "123")
        self.assertEqual(sent["amount"], "15.50")
        self.assertEqual(sent["payment_id"], "pi_123")
        self.assertEqual(sent["state"], "paid")
        self.assertEqual(
            sent["signature"],
            storefront_signature("ziina_shop", "15.50", "123", "pi_123", "paid", "tilda-secret"),
        )

    @respx.mock
    def test_callback_url_from_metadata(self):
        custom = "https://other.example.com/notify"
        route = respx.post(custom).mock(return_value=httpx.Response(200))

        self._post(gateway_event(tilda_callback_url=custom))

        self.assertTrue(route.called)

    @respx.mock
    def test_relay_failure_still_acknowledged(self):
        respx.post(CALLBACK_URL).mock(return_value=httpx.Response(500, text="down"))

        response = self._post(gateway_event())

        self.assertEqual(response.status_code, 200)
        self.assertIn("relayError", response.json())

    def test_intent_without_order_id_not_relayed(self):
        event = gateway_event()
        event["data"]["metadata"] = {}

        with patch("apps.web.payments.webhooks.relay_to_storefront") as mock_relay:
            response = self._post(event)

        self.assertEqual(response.status_code, 200)
        mock_relay.assert_not_called()

    @override_settings(ZIINA_WEBHOOK_SECRET="whsec")
    def test_bad_gateway_signature_ignored(self):
        with patch("apps.web.payments.webhooks.relay_to_storefront") as mock_relay:
            response = self._post(gateway_event(), HTTP_X_HMAC_SIGNATURE="deadbeef")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ignored"])
        mock_relay.assert_not_called()

    @override_settings(ZIINA_WEBHOOK_SECRET="whsec")
    def test_valid_gateway_signature_accepted(self):
        body = json.dumps(gateway_event()).encode()
        signature = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()

        with patch("apps.web.payments.webhooks.relay_to_storefront", return_value=200):
            response = self._post(body, HTTP_X_HMAC_SIGNATURE=signature)

        self.assertEqual(response.json()["relayStatus"], 200)

    @override_settings(PAYMENT_CREATES_POS_ORDER=True)
    def test_completed_intent_forwarded_when_enabled(self):
        with (
            patch("apps.web.payments.webhooks.relay_to_storefront", return_value=200),
            patch(
                "apps.web.payments.webhooks.handle_order_webhook", return_value=forwarded_ok()
            ) as mock_handle,
        ):
            response = self._post(gateway_event(customer_phone="89001234567", city="msk"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["forwarded"]["action"], "payment_updated")
        raw = mock_handle.call_args.args[0]
        self.assertEqual(raw.body["orderid"], "123")
        self.assertEqual(raw.body["paymentid"], "pi_123")
        self.assertEqual(raw.body["city"], "msk")
        self.assertFalse(mock_handle.call_args.kwargs["check_secret"])

    def test_completed_intent_not_forwarded_by_default(self):
        with (
            patch("apps.web.payments.webhooks.relay_to_storefront", return_value=200),
            patch("apps.web.payments.webhooks.handle_order_webhook") as mock_handle,
        ):
            response = self._post(gateway_event())

        self.assertNotIn("forwarded", response.json())
        mock_handle.assert_not_called()

    @override_settings(PAYMENT_CREATES_POS_ORDER=True)
    def test_forwarding_crash_is_reported_not_raised(self):
        with (
            patch("apps.web.payments.webhooks.relay_to_storefront", return_value=200),
            patch(
                "apps.web.payments.webhooks.handle_order_webhook",
                side_effect=RuntimeError("boom"),
            ),
        ):
            response = self._post(gateway_event())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["forwarded"], {"status": 500})

    @override_settings(PAYMENT_CREATES_POS_ORDER=True)
    def test_storefront_order_forwarded(self):
        with patch(
            "apps.web.payments.webhooks.handle_order_webhook", return_value=forwarded_ok()
        ) as mock_handle:
            response = self._post(order_body(paymentid="pay-1"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["forwarded"]["status"], 200)
        mock_handle.assert_called_once()
        self.assertTrue(mock_handle.call_args.kwargs["check_secret"])

    @override_settings(PAYMENT_CREATES_POS_ORDER=True, **ORDER_SETTINGS)
    @respx.mock
    def test_storefront_order_without_secret_creates_nothing(self):
        response = self._post(order_body(paymentid="pay-1"))

        self.assertEqual(response.status_code, 200)
        forwarded = response.json()["forwarded"]
        self.assertEqual(forwarded["status"], 401)
        self.assertFalse(forwarded["ok"])
        self.assertEqual(len(respx.calls), 0)

    @override_settings(PAYMENT_CREATES_POS_ORDER=True, **ORDER_SETTINGS)
    @respx.mock
    def test_storefront_order_with_secret_forwarded(self):
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"token": "tok"}))
        respx.post(SEARCH_URL).mock(return_value=httpx.Response(200, json={}))
        create = respx.post(CREATE_URL).mock(return_value=httpx.Response(200, json={}))

        response = self._post(order_body(paymentid="pay-1"), HTTP_X_WEBHOOK_SECRET="s3cret")

        self.assertEqual(response.json()["forwarded"]["status"], 200)
        self.assertTrue(create.called)

    def test_storefront_order_acknowledged_when_forwarding_disabled(self):
        with patch("apps.web.payments.webhooks.handle_order_webhook") as mock_handle:
            response = self._post(order_body())

        self.assertEqual(response.status_code, 200)
        self.assertNotIn("forwarded", response.json())
        mock_handle.assert_not_called()

    def test_legacy_path(self):
        response = self.http_client.post(
            "/api/webhook", data="{}", content_type="application/json"
        )

        self.assertEqual(response.status_code, 200)


@override_settings(**PAYMENT_SETTINGS)
class TestInitPayment(SimpleTestCase):
    """Tests for payment initiation."""

    def setUp(self):
        self.http_client = Client()
        self.url = "/payments/init"

    def _post(self, body):
        return self.http_client.post(
            self.url, data=json.dumps(body), content_type="application/json"
        )

    @respx.mock
    def test_redirects_to_gateway(self):
        route = respx.post(INTENT_URL).mock(
            return_value=httpx.Response(
                200, json={"id": "pi_1", "redirect_url": "https://pay.ziina.com/pi_1"}
            )
        )

        response = self._post(
            {
                "orderid": "123",
                "amount": "15.50",
                "phone": "89001234567",
                "callback_url": CALLBACK_URL,
            }
        )

        self.assertEqual(response.status_code, 303)
        self.assertEqual(response["Location"], "https://pay.ziina.com/pi_1")
        sent = json.loads(route.calls.last.request.content)
        self.assertEqual(sent["amount"], 1550)
        self.assertEqual(sent["success_url"], "https://testserver/ordersuccess")
        self.assertEqual(sent["cancel_url"], "https://testserver/orderfailed")
        self.assertEqual(sent["metadata"]["tilda_order_id"], "123")
        self.assertEqual(sent["metadata"]["tilda_payment_id"], "manual")
        self.assertEqual(sent["metadata"]["tilda_amount"], "15.50")
        self.assertEqual(sent["metadata"]["customer_phone"], "89001234567")
        self.assertEqual(sent["metadata"]["tilda_callback_url"], CALLBACK_URL)

    def test_missing_amount(self):
        response = self._post({"orderid": "123"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b"Missing amount")

    def test_missing_order_id(self):
        response = self._post({"amount": "10"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b"Missing orderid")

    @override_settings(ZIINA_API_TOKEN="")
    def test_gateway_not_configured(self):
        response = self._post({"orderid": "123", "amount": "10"})

        self.assertEqual(response.status_code, 500)

    @respx.mock
    def test_missing_redirect_url(self):
        respx.post(INTENT_URL).mock(return_value=httpx.Response(200, json={"id": "pi_1"}))

        response = self._post({"orderid": "123", "amount": "10"})

        self.assertEqual(response.status_code, 500)
        self.assertIn(b"No redirect URL", response.content)
