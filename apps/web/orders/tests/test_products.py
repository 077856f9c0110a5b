"""Tests for the storefront product parser."""

import json

import pytest

from apps.web.orders.products import (
    catalog_weight_key,
    clamp_quantity,
    is_pos_id,
    parse_products,
    parse_weight_key,
)

POS_UUID = "0b6f3a2e-1c4d-4e5f-8a9b-0c1d2e3f4a5b"


class TestWeightKey:
    """Tests for gram weight extraction."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("250 г", "250"),
            ("300 гр", "300"),
            ("500g", "500"),
            ("Зерно, 1000 г", "1000"),
            ("без модификатора", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_parse_weight_key(self, text, expected):
        assert parse_weight_key(text) == expected

    def test_nbsp_between_number_and_unit(self):
        assert parse_weight_key("250\u00a0г") == "250"

    def test_catalog_bare_number_is_weight(self):
        assert catalog_weight_key("300") == "300"

    def test_catalog_non_weight_text(self):
        assert catalog_weight_key("большой") == ""
        assert catalog_weight_key("5") == ""


class TestQuantity:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("3", 3), (2, 2), ("2.0", 2), ("0", 1), (-4, 1), ("abc", 1), (None, 1)],
    )
    def test_clamp_quantity(self, value, expected):
        assert clamp_quantity(value) == expected


class TestTextProducts:
    """Tests for the delimited text format."""

    def test_simple_line(self):
        items = parse_products("A - 2 x 10 = 20")

        assert len(items) == 1
        assert items[0].name == "A"
        assert items[0].quantity == 2
        assert items[0].modifier == ""

    def test_trailing_parens_become_modifier(self):
        items = parse_products("Кофе (300 г) - 1 x 15.5 = 15.5")

        assert items[0].name == "Кофе"
        assert items[0].modifier == "300 г"
        assert items[0].weight_key == "300"

    def test_multiple_lines(self):
        items = parse_products("Кофе (250 г) - 2 x 10 = 20; Чай - 1 x 5 = 5")

        assert [i.name for i in items] == ["Кофе", "Чай"]
        assert [i.quantity for i in items] == [2, 1]

    def test_unstructured_line_keeps_name(self):
        items = parse_products("Подарочная карта")

        assert items[0].name == "Подарочная карта"
        assert items[0].quantity == 1

    def test_empty_input(self):
        assert parse_products("") == []
        assert parse_products(None) == []
        assert parse_products([]) == []


class TestStructuredProducts:
    """Tests for product arrays."""

    def test_array_of_objects(self):
        items = parse_products(
            [{"name": "Кофе", "quantity": "2", "externalid": "tilda-1", "variant": "250 г"}]
        )

        assert items[0].name == "Кофе"
        assert items[0].quantity == 2
        assert items[0].modifier == "250 г"
        assert items[0].weight_key == "250"
        assert items[0].external_ids == ("tilda-1",)

    def test_json_encoded_array(self):
        raw = json.dumps([{"name": "Чай", "amount": 3}])

        items = parse_products(raw)

        assert items[0].name == "Чай"
        assert items[0].quantity == 3

    def test_single_object_treated_as_array(self):
        items = parse_products({"name": "Чай"})
        assert len(items) == 1

    def test_identifier_priority(self):
        items = parse_products(
            [
                {
                    "name": "Кофе",
                    "id": "generic-1",
                    "product_id": "product-1",
                    "variant_id": "variant-1",
                    "iiko_product_id": POS_UUID,
                }
            ]
        )

        assert items[0].external_ids == (POS_UUID, "variant-1", "product-1", "generic-1")
        assert items[0].pos_product_id == POS_UUID

    def test_uuid_external_id_is_pos_id(self):
        items = parse_products([{"name": "Кофе", "externalid": POS_UUID}])
        assert items[0].pos_product_id == POS_UUID

    def test_options_supply_modifier(self):
        items = parse_products(
            [{"name": "Кофе", "options": [{"option": "Вес", "variant": "500 г"}]}]
        )

        assert items[0].modifier == "500 г"
        assert items[0].weight_key == "500"

    def test_non_object_entries_dropped(self):
        items = parse_products([{"name": "Чай"}, "junk", 42])
        assert len(items) == 1


class TestIsPosId:
    def test_uuid(self):
        assert is_pos_id(POS_UUID)

    def test_not_uuid(self):
        assert not is_pos_id("tilda-123")
