"""
URL routing for the order webhook.
"""

from django.urls import path

from apps.web.orders import views

app_name = "orders"

urlpatterns = [
    path("webhooks/tilda-iiko", views.order_webhook, name="order-webhook"),
    path("api/tilda-iiko", views.order_webhook, name="order-webhook-legacy"),
]
