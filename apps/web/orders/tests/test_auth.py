"""Tests for the shared-secret check."""

import hashlib

import pytest
from bridge_schemas import RawOrderRequest

from apps.web.core.exceptions import AuthError
from apps.web.orders.auth import (
    parse_secrets,
    provided_secret,
    secret_digest,
    verify_shared_secret,
)


class TestSecrets:
    def test_parse_comma_separated(self):
        assert parse_secrets(" a, b ,,c ") == ["a", "b", "c"]
        assert parse_secrets("") == []
        assert parse_secrets(None) == []

    def test_digest_is_short_sha256(self):
        assert secret_digest("s3cret") == hashlib.sha256(b"s3cret").hexdigest()[:12]
        assert secret_digest("") == ""


class TestProvidedSecret:
    def test_header_first(self):
        raw = RawOrderRequest(headers={"x-tilda-secret": "from-header"}, query={"secret": "q"})
        assert provided_secret({"secret": "b"}, raw) == "from-header"

    def test_query_before_body(self):
        raw = RawOrderRequest(query={"token": "from-query"})
        assert provided_secret({"secret": "b"}, raw) == "from-query"

    def test_body(self):
        assert provided_secret({"token": "from-body"}, RawOrderRequest()) == "from-body"


class TestVerifySharedSecret:
    def test_disabled_without_accepted_secrets(self):
        verify_shared_secret({}, RawOrderRequest(), [])

    def test_any_accepted_secret_passes(self):
        raw = RawOrderRequest(headers={"X-Webhook-Secret": "second"})
        verify_shared_secret({}, raw, ["first", "second"])

    def test_mismatch_raises_with_digests_only(self):
        raw = RawOrderRequest(headers={"X-Webhook-Secret": "wrong"})

        with pytest.raises(AuthError) as exc_info:
            verify_shared_secret({}, raw, ["right"])

        error = exc_info.value
        assert error.status_code == 401
        assert error.provided_hash == secret_digest("wrong")
        assert error.expected_hashes == [secret_digest("right")]
        assert "right" not in error.expected_hashes

    def test_missing_secret_raises(self):
        with pytest.raises(AuthError) as exc_info:
            verify_shared_secret({}, RawOrderRequest(), ["right"])

        assert exc_info.value.provided_hash == ""
