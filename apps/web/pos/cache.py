"""
Process-wide caches shared by all webhook requests.

A single CacheStore holds the POS token cache and the catalog-mapping cache.
It is created once at import time (``cache_store``) and passed explicitly into
every request-handling call; tests build their own instance.

Refresh is not serialized: two requests that see an expired entry may both
fetch. The lock only guards structural changes to the token map.
"""

import threading
import time
from datetime import datetime

from bridge_schemas import CachedToken, CatalogMapping


class CacheStore:
    """Token cache (keyed by POS base URL + login) and catalog cache (global)."""

    def __init__(self) -> None:
        self._tokens: dict[str, CachedToken] = {}
        self._lock = threading.Lock()
        self._catalog: list[CatalogMapping] | None = None
        self._catalog_loaded_at = 0.0

    # =========================================================================
    # Tokens
    # =========================================================================

    @staticmethod
    def token_key(base_url: str, api_login: str) -> str:
        return f"{base_url}::{api_login}"

    def get_token(self, key: str, now: datetime) -> str | None:
        """Return the cached token for ``key`` unless it has expired."""
        with self._lock:
            cached = self._tokens.get(key)
        if cached is None or not cached.is_valid(now):
            return None
        return cached.access_token

    def put_token(self, key: str, token: CachedToken) -> None:
        with self._lock:
            self._tokens[key] = token

    # =========================================================================
    # Catalog
    # =========================================================================

    def get_catalog(self, ttl_seconds: float) -> list[CatalogMapping] | None:
        """Return cached mapping rows if they were loaded less than ttl ago."""
        catalog = self._catalog
        if catalog is None:
            return None
        if time.monotonic() - self._catalog_loaded_at >= ttl_seconds:
            return None
        return catalog

    def put_catalog(self, rows: list[CatalogMapping]) -> None:
        self._catalog_loaded_at = time.monotonic()
        self._catalog = rows

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()
        self._catalog = None
        self._catalog_loaded_at = 0.0


cache_store = CacheStore()
