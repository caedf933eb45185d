"""
Unit tests for line-item refinement and coercion.
"""

from datetime import date
import pytest
from invoice_intake.models.invoice import RawLineItem
from invoice_intake.services.line_items import (
    coerce_line_item,
    coerce_line_items,
    default_line_item,
    refine,
)


class TestRefine:
    def test_service_period_is_split_out(self):
        refined = refine("Hosting 01.05.14-15.05.14")

        assert refined.description == "Hosting"
        assert refined.service_period.start == date(2014, 5, 1)
        assert refined.service_period.end == date(2014, 5, 15)

    def test_bare_range_leaves_default_description(self):
        refined = refine("01.05.14-15.05.14")

        assert refined.description == "Unspecified item"
        assert refined.service_period.start == date(2014, 5, 1)

    def test_spaced_range_in_brackets(self):
        refined = refine("Wartung (01.01.24 - 31.01.24) Paket A")

        assert refined.description == "Wartung Paket A"
        assert refined.service_period.end == date(2024, 1, 31)

    def test_four_digit_years(self):
        refined = refine("Support 01.02.2023-28.02.2023")

        assert refined.description == "Support"
        assert refined.service_period.start == date(2023, 2, 1)
        assert refined.service_period.end == date(2023, 2, 28)

    def test_service_id_english_and_german(self):
        assert refine("Service: web_01 monthly").service_id == "web_01"
        assert refine("Managed DIENST:db42").service_id == "db42"

    def test_service_id_is_independent_of_period(self):
        refined = refine("Dienst: mail_7 01.03.22-31.03.22")

        assert refined.service_id == "mail_7"
        assert refined.service_period.start == date(2022, 3, 1)
        assert refined.description == "Dienst: mail_7"

    def test_plain_description_untouched(self):
        refined = refine("Consulting hours")

        assert refined.description == "Consulting hours"
        assert refined.service_period is None
        assert refined.service_id is None


class TestCoerce:
    def test_string_numbers_are_parsed(self):
        item = coerce_line_item(RawLineItem(description="Widget", quantity="2", unit_price="1.234,50", total="2.469,00"))

        assert item.quantity == 2
        assert item.unit_price == pytest.approx(1234.5)
        assert item.total == pytest.approx(2469.0)

    def test_missing_quantity_defaults_to_one(self):
        item = coerce_line_item(RawLineItem(description="Widget", total=10))
        assert item.quantity == 1
        assert item.unit_price == 0

    def test_zero_or_negative_quantity_defaults_to_one(self):
        assert coerce_line_item(RawLineItem(description="x", quantity=0, total=5)).quantity == 1
        assert coerce_line_item(RawLineItem(description="x", quantity="-3", total=5)).quantity == 1

    def test_missing_total_derived_from_unit_price(self):
        item = coerce_line_item(RawLineItem(description="Widget", quantity=3, unit_price="9,99"))
        assert item.total == pytest.approx(29.97)

    def test_unparseable_total_becomes_zero(self):
        item = coerce_line_item(RawLineItem(description="Widget", total="see attachment"))
        assert item.total == 0

    def test_existing_service_fields_are_kept(self):
        item = coerce_line_item(RawLineItem(
            description="Hosting",
            total=10,
            service_id="web_01",
            service_period={"start": "2014-05-01", "end": "2014-05-15"},
        ))

        assert item.service_id == "web_01"
        assert item.service_period.start == date(2014, 5, 1)


class TestDefaults:
    def test_default_line_item_mirrors_amount(self):
        item = default_line_item(250.0)

        assert item.description == "Invoice total"
        assert item.quantity == 1
        assert item.unit_price == 250.0
        assert item.total == 250.0

    def test_empty_collection_gets_single_default(self):
        items = coerce_line_items([], 99.5)

        assert len(items) == 1
        assert items[0].total == 99.5

    def test_none_collection_gets_single_default(self):
        assert len(coerce_line_items(None, 1.0)) == 1

    def test_order_is_preserved(self):
        raw = [RawLineItem(description=f"Item {n}", total=n) for n in range(1, 4)]
        assert [item.description for item in coerce_line_items(raw, 6.0)] == ["Item 1", "Item 2", "Item 3"]
