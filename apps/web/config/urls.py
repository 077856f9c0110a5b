"""
URL configuration for the order bridge.
"""

from django.urls import include, path

urlpatterns = [
    # Public webhook endpoints
    path("", include("apps.web.orders.urls")),
    path("", include("apps.web.payments.urls")),
]
