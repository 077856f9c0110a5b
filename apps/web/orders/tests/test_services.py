"""Tests for the order pipeline service."""

from unittest import mock

import httpx
import pytest
import respx
from bridge_schemas import CanonicalOrder, RawOrderRequest

from apps.web.core.tests.factories import IIKO_BASE_URL, order_body
from apps.web.orders import services
from apps.web.orders.services import city_hints, process_order
from apps.web.pos.adapters.iiko import IikoAdapter


class TestCityHints:
    def test_order_fields_win_over_query(self):
        order = CanonicalOrder(project_id="555", page_id="777", city_hint="msk")
        raw = RawOrderRequest(query={"city": "spb", "projectid": "1", "pageid": "2"})

        hints = city_hints(order, raw)

        assert hints.query_city == "spb"
        assert hints.project_id == "555"
        assert hints.page_id == "777"
        assert hints.body_city == "msk"

    def test_query_and_header_fallbacks(self):
        raw = RawOrderRequest(
            query={"projectId": "555", "pageId": "777"},
            headers={"Referer": "https://shop.example.com/spb/", "Host": "spb.example.com"},
        )

        hints = city_hints(CanonicalOrder(), raw)

        assert hints.project_id == "555"
        assert hints.page_id == "777"
        assert hints.referer == "https://shop.example.com/spb/"
        assert hints.host == "spb.example.com"

    def test_forwarded_host_preferred(self):
        raw = RawOrderRequest(headers={"Host": "bridge.local", "X-Forwarded-Host": "spb.x.ru"})
        assert city_hints(CanonicalOrder(), raw).host == "spb.x.ru"


class TestProcessOrder:
    @pytest.mark.asyncio
    @respx.mock
    async def test_body_extracted_once(self, cache, bridge_settings):
        respx.post(f"{IIKO_BASE_URL}{IikoAdapter.TOKEN_PATH}").mock(
            return_value=httpx.Response(200, json={"token": "tok"})
        )
        respx.post(f"{IIKO_BASE_URL}{IikoAdapter.CREATE_PATH}").mock(
            return_value=httpx.Response(200, json={})
        )

        with mock.patch.object(
            services, "extract_order", wraps=services.extract_order
        ) as spy:
            result = await process_order(order_body(), RawOrderRequest(), "req-1", cache)

        assert result.status == 200
        assert result.payload["city"] == "msk"
        spy.assert_called_once()
