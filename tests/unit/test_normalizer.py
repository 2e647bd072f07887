"""Unit tests for model-output normalization.

Tests cover:
- Code fence stripping and JSON recovery
- Defaults for missing required fields
- Number and date coercion
- Line item total recomputation
- Idempotence on well-formed input
"""

import json
import re
from datetime import date

import pytest

from invoicedesk.extraction.normalizer import (
    DEFAULT_CURRENCY,
    DEFAULT_VENDOR_NAME,
    coerce_date,
    coerce_number,
    normalize_extraction,
    strip_code_fences,
)

TODAY = date(2024, 3, 1)


@pytest.fixture
def well_formed_response() -> str:
    """Model response that needs no repair."""
    return (
        '{"vendor": {"name": "Acme Corp", "address": "1 Main St", "taxId": "DE123"},'
        ' "invoice": {"number": "INV-42", "date": "2024-01-15", "currency": "EUR",'
        ' "subtotal": 200, "taxPercent": 19, "total": 238,'
        ' "lineItems": [{"description": "Widget", "unitPrice": 50, "quantity": 4, "total": 200}]}}'
    )


def test_fenced_response_with_bad_sections() -> None:
    """Test fenced JSON with empty vendor and non-array line items."""
    raw = '```json\n{"vendor":{},"invoice":{"lineItems":"not-an-array"}}\n```'

    result = normalize_extraction(raw, today=TODAY)

    assert result.vendor["name"] == "Unknown Vendor"
    assert result.invoice["lineItems"] == []
    assert result.invoice["date"] == "2024-03-01"


def test_defaults_use_current_date() -> None:
    """Test that a missing date defaults to today when no date is injected."""
    result = normalize_extraction('{"vendor": {}, "invoice": {}}')

    assert result.invoice["date"] == date.today().isoformat()


def test_unparseable_response_yields_minimal_invoice() -> None:
    """Test that garbage input never raises and fills every default."""
    result = normalize_extraction("Sorry, I cannot read this document.", today=TODAY)

    assert result.vendor == {"name": DEFAULT_VENDOR_NAME}
    assert re.fullmatch(r"DOC-\d{4}", result.invoice["number"])
    assert result.invoice["date"] == "2024-03-01"
    assert result.invoice["currency"] == DEFAULT_CURRENCY
    assert result.invoice["lineItems"] == []


@pytest.mark.parametrize("raw_text", [None, "", "[1, 2, 3]", "null"])
def test_non_object_responses(raw_text: str | None) -> None:
    """Test that empty and non-object responses fall back to defaults."""
    result = normalize_extraction(raw_text, today=TODAY)

    assert result.vendor["name"] == DEFAULT_VENDOR_NAME
    assert result.invoice["lineItems"] == []


def test_json_surrounded_by_prose() -> None:
    """Test that the object is recovered from surrounding text."""
    raw = 'Here is the data: {"vendor": {"name": "Globex"}, "invoice": {"number": "7"}} Thanks!'

    result = normalize_extraction(raw, today=TODAY)

    assert result.vendor["name"] == "Globex"
    assert result.invoice["number"] == "7"


def test_well_formed_response_is_preserved(well_formed_response: str) -> None:
    """Test that already-valid fields pass through unchanged."""
    result = normalize_extraction(well_formed_response, today=TODAY)

    assert result.vendor == {"name": "Acme Corp", "address": "1 Main St", "taxId": "DE123"}
    assert result.invoice["number"] == "INV-42"
    assert result.invoice["date"] == "2024-01-15"
    assert result.invoice["currency"] == "EUR"
    assert result.invoice["lineItems"] == [
        {"description": "Widget", "unitPrice": 50, "quantity": 4, "total": 200.0}
    ]


def test_normalization_is_idempotent(well_formed_response: str) -> None:
    """Test that normalizing a normalized payload changes nothing."""
    first = normalize_extraction(well_formed_response, today=TODAY)
    second = normalize_extraction(
        json.dumps({"vendor": first.vendor, "invoice": first.invoice}), today=TODAY
    )

    assert second == first


def test_line_item_total_is_recomputed() -> None:
    """Test that line totals follow unit price, quantity, discount and VAT."""
    raw = (
        '{"vendor": {"name": "V"}, "invoice": {"lineItems": ['
        '{"description": "A", "unitPrice": "100", "quantity": 2, "discount": 10, "vat": 20,'
        ' "total": 1},'
        '{"description": "B", "unitPrice": 3.5, "quantity": 3}'
        "]}}"
    )

    items = normalize_extraction(raw, today=TODAY).invoice["lineItems"]

    assert items[0]["total"] == 216.0
    assert items[1]["total"] == 10.5


def test_non_dict_line_items_are_dropped() -> None:
    """Test that stray strings inside the line item list are skipped."""
    raw = '{"invoice": {"lineItems": ["oops", {"description": "Real", "unitPrice": 1, "quantity": 1}]}}'

    items = normalize_extraction(raw, today=TODAY).invoice["lineItems"]

    assert len(items) == 1
    assert items[0]["description"] == "Real"


def test_invoice_amounts_are_coerced() -> None:
    """Test that formatted amounts become numbers."""
    raw = '{"invoice": {"subtotal": "1,234.50", "total": "$1,469.06", "taxPercent": "19%"}}'

    invoice = normalize_extraction(raw, today=TODAY).invoice

    assert invoice["subtotal"] == 1234.5
    assert invoice["total"] == 1469.06
    assert invoice["taxPercent"] == 19.0


def test_numeric_po_number_becomes_text() -> None:
    """Test that a PO number returned as a JSON number is kept as a string."""
    raw = '{"invoice": {"number": 1001, "poNumber": 4500012345}}'

    invoice = normalize_extraction(raw, today=TODAY).invoice

    assert invoice["poNumber"] == "4500012345"
    assert invoice["number"] == "1001"


def test_blank_po_number_becomes_null() -> None:
    invoice = normalize_extraction('{"invoice": {"poNumber": "  "}}', today=TODAY).invoice

    assert invoice["poNumber"] is None


def test_strip_code_fences() -> None:
    """Test fence removal with and without a language tag."""
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


@pytest.mark.parametrize(
    "value,expected",
    [
        (12, 12),
        (1.5, 1.5),
        ("1,234.50", 1234.5),
        ("$12", 12.0),
        ("n/a", "n/a"),
        (None, None),
    ],
)
def test_coerce_number(value: object, expected: object) -> None:
    """Test number coercion keeps unparseable values unchanged."""
    assert coerce_number(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-01-15", "2024-01-15"),
        ("01/15/2024", "2024-01-15"),
        ("15.01.2024", "2024-01-15"),
        ("January 15, 2024", "2024-01-15"),
        ("2024-01-15T10:00:00Z", "2024-01-15"),
        ("someday", "2024-03-01"),
        (None, "2024-03-01"),
    ],
)
def test_coerce_date(value: object, expected: str) -> None:
    """Test date coercion to YYYY-MM-DD with fallback to today."""
    assert coerce_date(value, TODAY) == expected
