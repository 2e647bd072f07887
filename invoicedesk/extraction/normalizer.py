"""Repair and default raw model output into a usable invoice payload.

Model output is untrusted: it may be wrapped in markdown fences, truncated,
missing sections or carry numbers as strings. `normalize_extraction` never
raises for any of that; in the worst case it returns a minimal invoice with
every required field defaulted.

Range checks belong to the repository: a negative unit price passes through
here and is rejected when the user tries to save it.
"""

import json
import logging
import random
import re
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_VENDOR_NAME = "Unknown Vendor"
DEFAULT_CURRENCY = "USD"

_FENCE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?|\n?\s*```\s*$")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")
_NUMBER_NOISE = re.compile(r"[^\d.\-]")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%d-%m-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)

_INVOICE_NUMBER_FIELDS = ("subtotal", "taxPercent", "total")
_LINE_ITEM_NUMBER_FIELDS = ("unitPrice", "quantity", "total", "discount", "vat")


class ExtractedInvoice(BaseModel):
    """Canonical extraction result: `vendor` and `invoice` sections, not yet validated."""

    vendor: dict[str, Any]
    invoice: dict[str, Any]


def placeholder_number() -> str:
    """Generated invoice number used when the document has none."""
    return f"DOC-{random.randint(1000, 9999)}"


def strip_code_fences(text: str) -> str:
    """Remove a leading ```/```json fence and a trailing ``` fence."""
    return _FENCE.sub("", text).strip()


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        pass

    # Models sometimes add prose around the object
    match = _OBJECT_SPAN.search(text)
    if match:
        try:
            return json.loads(match.group(0))
        except ValueError:
            pass
    return None


def _clean_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def coerce_number(value: Any) -> Any:
    """Turn '1,234.50' or '$12' into a float; leave anything unparseable unchanged."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        cleaned = _NUMBER_NOISE.sub("", value.replace(",", ""))
        if cleaned and cleaned not in {"-", ".", "-."}:
            try:
                return float(cleaned)
            except ValueError:
                return value
    return value


def coerce_date(value: Any, today: date) -> str:
    """Return `value` as YYYY-MM-DD, or today's date if it cannot be read."""
    text = _clean_text(value)
    if text:
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date().isoformat()
            except ValueError:
                continue
        # ISO timestamps such as 2024-01-15T00:00:00Z
        try:
            return date.fromisoformat(text[:10]).isoformat()
        except ValueError:
            pass
    return today.isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _line_total(item: dict[str, Any]) -> float:
    total = float(item["unitPrice"]) * float(item["quantity"])
    if _is_number(item.get("discount")):
        total *= 1 - item["discount"] / 100
    if _is_number(item.get("vat")):
        total *= 1 + item["vat"] / 100
    return round(total, 2)


def _normalize_line_item(raw: dict[str, Any]) -> dict[str, Any]:
    item = dict(raw)
    for field in _LINE_ITEM_NUMBER_FIELDS:
        if field in item:
            item[field] = coerce_number(item[field])
    if "description" in item:
        item["description"] = _clean_text(item["description"]) or ""
    if _is_number(item.get("unitPrice")) and _is_number(item.get("quantity")):
        item["total"] = _line_total(item)
    return item


def _normalize_vendor(raw: dict[str, Any]) -> dict[str, Any]:
    vendor = dict(raw)
    vendor["name"] = _clean_text(vendor.get("name")) or DEFAULT_VENDOR_NAME
    for field in ("address", "taxId"):
        if field in vendor:
            vendor[field] = _clean_text(vendor[field])
    return vendor


def _normalize_invoice(raw: dict[str, Any], today: date) -> dict[str, Any]:
    invoice = dict(raw)
    invoice["number"] = _clean_text(invoice.get("number")) or placeholder_number()
    invoice["date"] = coerce_date(invoice.get("date"), today)
    invoice["currency"] = _clean_text(invoice.get("currency")) or DEFAULT_CURRENCY

    for field in _INVOICE_NUMBER_FIELDS:
        if field in invoice:
            invoice[field] = coerce_number(invoice[field])

    if "poNumber" in invoice:
        invoice["poNumber"] = _clean_text(invoice["poNumber"])

    if "poDate" in invoice and invoice["poDate"] is not None:
        po_date = _clean_text(invoice["poDate"])
        invoice["poDate"] = coerce_date(po_date, today) if po_date else None

    line_items = invoice.get("lineItems")
    if isinstance(line_items, list):
        invoice["lineItems"] = [
            _normalize_line_item(item) for item in line_items if isinstance(item, dict)
        ]
    else:
        invoice["lineItems"] = []
    return invoice


def normalize_extraction(raw_text: str | None, today: date | None = None) -> ExtractedInvoice:
    """Turn raw model output into a well-formed `{vendor, invoice}` payload.

    Args:
        raw_text: Model response text, possibly fenced or malformed
        today: Date used for a missing invoice date (defaults to the current date)

    Returns:
        ExtractedInvoice whose vendor name, invoice number, date, currency and
        line-item list are always present
    """
    today = today or date.today()

    parsed = _parse_json(strip_code_fences(raw_text or ""))
    if not isinstance(parsed, dict):
        logger.warning("Could not parse model response as a JSON object; using defaults")
        parsed = {}

    vendor = parsed.get("vendor")
    invoice = parsed.get("invoice")

    return ExtractedInvoice(
        vendor=_normalize_vendor(vendor if isinstance(vendor, dict) else {}),
        invoice=_normalize_invoice(invoice if isinstance(invoice, dict) else {}, today),
    )
