"""Shared-secret check for the storefront order webhook."""

import hashlib
import hmac
import logging
from typing import Any

from bridge_schemas import RawOrderRequest

from apps.web.core.exceptions import AuthError
from apps.web.core.text import as_text

logger = logging.getLogger(__name__)

SECRET_HEADERS = ("X-Webhook-Secret", "X-Tilda-Secret", "X-Tilda-Webhook-Secret")
SECRET_FIELDS = ("secret", "token")


def secret_digest(value: str) -> str:
    """Short, non-reversible fingerprint of a secret for logs and debug output."""
    if not value:
        return ""
    return hashlib.sha256(value.encode()).hexdigest()[:12]


def parse_secrets(raw: str | None) -> list[str]:
    """Split a comma-separated list of accepted secrets."""
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


def provided_secret(data: dict[str, Any], raw: RawOrderRequest) -> str:
    """Secret sent by the caller: header, then query string, then body."""
    for header in SECRET_HEADERS:
        value = raw.header(header)
        if value:
            return value.strip()
    for source in (raw.query, data):
        for field in SECRET_FIELDS:
            value = as_text(source.get(field))
            if value:
                return value
    return ""


def verify_shared_secret(
    data: dict[str, Any], raw: RawOrderRequest, accepted: list[str]
) -> None:
    """
    Check the caller's secret against the accepted list.

    No accepted secrets means the check is disabled.

    Raises:
        AuthError: If the secret is missing or matches none of the accepted ones.
    """
    if not accepted:
        return

    provided = provided_secret(data, raw)
    if provided and any(
        hmac.compare_digest(provided.encode(), secret.encode()) for secret in accepted
    ):
        return

    expected_hashes = [secret_digest(s) for s in accepted]
    logger.warning(
        "Webhook secret mismatch: provided=%s expected=%s",
        secret_digest(provided) or "<none>",
        ",".join(expected_hashes),
    )
    raise AuthError(
        "Unauthorized",
        provided_hash=secret_digest(provided),
        expected_hashes=expected_hashes,
    )
