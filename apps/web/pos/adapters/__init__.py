"""POS adapters - implementations for each POS provider."""

from typing import Any

from apps.web.pos.adapters.base import POSAdapter
from apps.web.pos.adapters.iiko import IikoAdapter
from apps.web.pos.cache import CacheStore


def get_adapter(provider: str, cache: CacheStore, **kwargs: Any) -> POSAdapter:
    """
    Get a POS adapter instance for the specified provider.

    Args:
        provider: The POS provider to get an adapter for.
        cache: Process-wide cache store (tokens are cached there).
        **kwargs: Additional arguments passed to the adapter constructor
            (base_url, http_client, timeouts, token lifetime).

    Returns:
        An adapter instance implementing the POSAdapter protocol.

    Raises:
        ValueError: If the provider is not supported.

    Example:
        adapter = get_adapter("iiko", cache_store, base_url=settings.IIKO_BASE_URL)
        token = await adapter.get_token(tenant)
    """
    if provider == "iiko":
        return IikoAdapter(cache, **kwargs)
    raise ValueError(f"Unsupported POS provider: {provider}. Supported: iiko")


__all__ = [
    "IikoAdapter",
    "POSAdapter",
    "get_adapter",
]
