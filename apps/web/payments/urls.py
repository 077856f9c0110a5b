"""
URL routing for payment endpoints.
"""

from django.urls import path

from apps.web.payments import webhooks

app_name = "payments"

urlpatterns = [
    path("webhooks/payment", webhooks.payment_webhook, name="payment-webhook"),
    path("api/webhook", webhooks.payment_webhook, name="payment-webhook-legacy"),
    path("payments/init", webhooks.init_payment, name="init-payment"),
]
