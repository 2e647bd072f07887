"""Invoice data models.

JSON payloads and stored documents use camelCase keys (`fileId`, `unitPrice`,
`taxId`); Python attributes are snake_case. Field limits mirror what the
review UI lets users edit.
"""

import re
from datetime import date, datetime, timezone
from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _check_iso_date(value: str | None) -> str | None:
    if value is None:
        return None
    if not _ISO_DATE.match(value):
        raise ValueError("must be an ISO-8601 date (YYYY-MM-DD)")
    date.fromisoformat(value)
    return value


class CamelModel(BaseModel):
    """Base model with camelCase aliases and trimmed strings."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def dump(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Vendor(CamelModel):
    """Invoice issuer."""

    name: str = Field(min_length=1, max_length=200, description="Vendor/company name")
    address: str | None = Field(None, max_length=500)
    tax_id: str | None = Field(None, max_length=50)


class LineItem(CamelModel):
    """One billed line.

    `total` is stored as supplied; discount and VAT are percentages.
    """

    description: str = Field(min_length=1, max_length=500)
    unit_price: float = Field(ge=0)
    quantity: float = Field(ge=0)
    total: float = Field(ge=0)
    discount: float | None = Field(None, ge=0, le=100)
    vat: float | None = Field(None, ge=0, le=100)


class InvoiceData(CamelModel):
    """Structured invoice fields."""

    number: str = Field(min_length=1, max_length=100, description="Invoice/document number")
    date: str = Field(description="Invoice date (YYYY-MM-DD)")
    currency: str = Field("USD", max_length=10, description="Currency code")
    subtotal: float | None = Field(None, ge=0)
    tax_percent: float | None = Field(None, ge=0, le=100)
    total: float | None = Field(None, ge=0)
    po_number: str | None = Field(None, max_length=100)
    po_date: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)

    @field_validator("date", "po_date")
    @classmethod
    def _iso_date(cls, value: str | None) -> str | None:
        return _check_iso_date(value)


class InvoiceCreate(CamelModel):
    """Payload accepted when creating an invoice."""

    file_id: str = Field(min_length=1, description="Identifier of the uploaded source file")
    file_name: str = Field(min_length=1, max_length=255)
    vendor: Vendor
    invoice: InvoiceData


class Invoice(InvoiceCreate):
    """Stored invoice record (aggregate root)."""

    id: str = Field(alias="_id")
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_object_id(cls, value: Any) -> Any:
        if isinstance(value, ObjectId):
            return str(value)
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # the document store hands back naive UTC datetimes unless tz_aware is set
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class VendorUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    address: str | None = Field(None, max_length=500)
    tax_id: str | None = Field(None, max_length=50)


class InvoiceDataUpdate(CamelModel):
    number: str | None = Field(None, min_length=1, max_length=100)
    date: str | None = None
    currency: str | None = Field(None, max_length=10)
    subtotal: float | None = Field(None, ge=0)
    tax_percent: float | None = Field(None, ge=0, le=100)
    total: float | None = Field(None, ge=0)
    po_number: str | None = Field(None, max_length=100)
    po_date: str | None = None
    line_items: list[LineItem] | None = None

    @field_validator("date", "po_date")
    @classmethod
    def _iso_date(cls, value: str | None) -> str | None:
        return _check_iso_date(value)


class InvoiceUpdate(CamelModel):
    """Partial update: only the sections and fields present are changed."""

    file_id: str | None = Field(None, min_length=1)
    file_name: str | None = Field(None, min_length=1, max_length=255)
    vendor: VendorUpdate | None = None
    invoice: InvoiceDataUpdate | None = None


class SearchResult(BaseModel):
    """One page of search results plus totals for the whole match set."""

    items: list[Invoice]
    total: int
    pages: int
    page: int
    limit: int
