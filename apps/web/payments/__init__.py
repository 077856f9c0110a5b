"""Payments module - Ziina gateway and storefront payment notifications."""
