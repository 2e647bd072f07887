"""Invoice persistence and search on top of a MongoDB collection.

The repository is the validation entry point for stored invoices: every write
is checked against the data model before it reaches the collection. Updates
are full-document replaces, so concurrent editors follow last-write-wins.
"""

import asyncio
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from bson import ObjectId
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from invoicedesk.invoices.schema import Invoice, InvoiceCreate, InvoiceUpdate, SearchResult
from invoicedesk.shared.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    describe_errors,
)

logger = logging.getLogger(__name__)

SORT_FIELDS = ("createdAt", "updatedAt", "vendor.name", "invoice.number")
SORT_ORDERS = ("asc", "desc")
MAX_LIMIT = 100

DUPLICATE_FILE_ID = "Invoice with this file ID already exists"

_OBJECT_ID = re.compile(r"^[0-9a-fA-F]{24}$")


def _utcnow() -> datetime:
    # BSON datetimes keep milliseconds only
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def next_timestamp(previous: datetime | None) -> datetime:
    """Current time, bumped past `previous` so mutation timestamps strictly increase."""
    now = _utcnow()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    if now <= previous:
        now = previous + timedelta(milliseconds=1)
    return now


def build_search_filter(query: str | None) -> dict[str, Any]:
    """Case-insensitive substring match on vendor name OR invoice number."""
    term = (query or "").strip()
    if not term:
        return {}
    pattern = {"$regex": re.escape(term), "$options": "i"}
    return {"$or": [{"vendor.name": pattern}, {"invoice.number": pattern}]}


def _merge(existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    merged = dict(existing)
    for key, value in changes.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


def _validate(model: type[BaseModel], payload: Any) -> Any:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError("Validation error", details=describe_errors(e.errors())) from e


def parse_invoice_id(invoice_id: str) -> ObjectId:
    """Check the identifier format before any lookup.

    Raises:
        ValidationError: If the id is not a 24-character hex string
    """
    if not isinstance(invoice_id, str) or not _OBJECT_ID.match(invoice_id):
        raise ValidationError("Invalid invoice ID format")
    return ObjectId(invoice_id)


class InvoiceRepository:
    """CRUD and search over the `invoices` collection."""

    def __init__(self, collection: Any) -> None:
        """Initialize repository.

        Args:
            collection: Motor collection (or API-compatible stand-in)
        """
        self.collection = collection

    async def ensure_indexes(self) -> None:
        """Create the unique file index and the search/sort indexes."""
        await self.collection.create_index("fileId", unique=True)
        await self.collection.create_index([("createdAt", DESCENDING)])
        await self.collection.create_index("vendor.name")
        await self.collection.create_index("invoice.number")

    @staticmethod
    def _to_document(invoice: BaseModel) -> dict[str, Any]:
        document: dict[str, Any] = invoice.model_dump(by_alias=True, exclude_none=True)
        document.pop("_id", None)
        return document

    async def create(self, payload: InvoiceCreate | dict[str, Any]) -> Invoice:
        """Validate and store a new invoice.

        Caller-supplied `_id`, `createdAt` and `updatedAt` are ignored.

        Raises:
            ValidationError: If the payload violates the data model
            ConflictError: If an invoice already references the same file
        """
        data: InvoiceCreate = _validate(InvoiceCreate, payload)

        if await self.collection.find_one({"fileId": data.file_id}, {"_id": 1}) is not None:
            raise ConflictError(DUPLICATE_FILE_ID)

        document = self._to_document(data)
        document["createdAt"] = _utcnow()

        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_FILE_ID) from e

        document["_id"] = result.inserted_id
        logger.info(f"Created invoice {result.inserted_id} for file {data.file_id}")
        return Invoice.model_validate(document)

    async def update(self, invoice_id: str, partial: InvoiceUpdate | dict[str, Any]) -> Invoice:
        """Merge the provided fields into an existing invoice.

        Sections and fields absent from `partial` are left untouched; line
        items, when given, replace the stored list as a whole.

        Raises:
            ValidationError: On malformed id or if the merged record is invalid
            NotFoundError: If the invoice does not exist
            ConflictError: If the new fileId belongs to another invoice
        """
        object_id = parse_invoice_id(invoice_id)
        changes: InvoiceUpdate = _validate(InvoiceUpdate, partial)

        existing = await self.collection.find_one({"_id": object_id})
        if existing is None:
            raise NotFoundError("Invoice not found")

        merged = _merge(existing, changes.model_dump(by_alias=True, exclude_unset=True))
        merged["updatedAt"] = next_timestamp(existing.get("updatedAt") or existing.get("createdAt"))
        invoice: Invoice = _validate(Invoice, merged)

        if invoice.file_id != existing.get("fileId"):
            duplicate = await self.collection.find_one(
                {"fileId": invoice.file_id, "_id": {"$ne": object_id}}, {"_id": 1}
            )
            if duplicate is not None:
                raise ConflictError(DUPLICATE_FILE_ID)

        document = self._to_document(invoice)
        document["_id"] = object_id

        try:
            result = await self.collection.replace_one({"_id": object_id}, document)
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_FILE_ID) from e

        if result.matched_count == 0:
            raise NotFoundError("Invoice not found")

        logger.info(f"Updated invoice {invoice_id}")
        return invoice

    async def delete(self, invoice_id: str) -> None:
        """Delete an invoice. The referenced file is left in storage.

        Raises:
            ValidationError: On malformed id
            NotFoundError: If the invoice does not exist
        """
        object_id = parse_invoice_id(invoice_id)
        result = await self.collection.delete_one({"_id": object_id})
        if result.deleted_count == 0:
            raise NotFoundError("Invoice not found")
        logger.info(f"Deleted invoice {invoice_id}")

    async def find_by_id(self, invoice_id: str) -> Invoice:
        """Fetch one invoice.

        Raises:
            ValidationError: On malformed id (checked before the lookup)
            NotFoundError: If the invoice does not exist
        """
        object_id = parse_invoice_id(invoice_id)
        document = await self.collection.find_one({"_id": object_id})
        if document is None:
            raise NotFoundError("Invoice not found")
        return Invoice.model_validate(document)

    async def search(
        self,
        query: str | None = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> SearchResult:
        """Return one page of invoices matching `query`.

        The count and the page come from the same filter, so `total` never
        drifts from the result set.

        Raises:
            ValidationError: If paging or sorting arguments are out of range
        """
        problems = []
        if page < 1:
            problems.append("page: must be greater than or equal to 1")
        if not 1 <= limit <= MAX_LIMIT:
            problems.append(f"limit: must be between 1 and {MAX_LIMIT}")
        if sort_by not in SORT_FIELDS:
            problems.append(f"sortBy: must be one of {', '.join(SORT_FIELDS)}")
        if sort_order not in SORT_ORDERS:
            problems.append("sortOrder: must be one of asc, desc")
        if problems:
            raise ValidationError("Validation error", details=problems)

        search_filter = build_search_filter(query)
        direction = DESCENDING if sort_order == "desc" else ASCENDING
        cursor = self.collection.find(
            search_filter,
            sort=[(sort_by, direction), ("_id", direction)],
            skip=(page - 1) * limit,
            limit=limit,
        )

        documents, total = await asyncio.gather(
            cursor.to_list(length=limit),
            self.collection.count_documents(search_filter),
        )

        return SearchResult(
            items=[Invoice.model_validate(document) for document in documents],
            total=total,
            pages=math.ceil(total / limit),
            page=page,
            limit=limit,
        )
