import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from invoice_pipeline.database.models import InvoiceRecord
from invoice_pipeline.workflow.exceptions import InvalidInputError

ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})

DEFAULT_TAG_COLOR = "#3B82F6"


class InvoiceType(StrEnum):
    ISSUED = "ISSUED"
    RECEIVED = "RECEIVED"


def parse_tag_ids(raw: list[int] | str | None) -> list[int]:
    """Accept tag ids as a list, a JSON array string, or "1,2,3"."""
    if raw is None:
        return []
    if isinstance(raw, list):
        return [int(tag_id) for tag_id in raw]
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, list):
        return [int(tag_id) for tag_id in parsed]
    return [int(part) for part in (p.strip() for p in raw.split(",")) if part.isdigit()]


@dataclass(frozen=True)
class UploadedFile:
    file_name: str
    content: bytes
    content_type: str


@dataclass(frozen=True)
class CreateInvoiceInput:
    name: str
    date: datetime
    type: InvoiceType | str
    tag_ids: list[int] | str | None = None

    def validated(self) -> "CreateInvoiceInput":
        """Return a copy with a normalized type and parsed tag ids.

        Raises:
            InvalidInputError: on an empty name, unknown type or bad tag ids.
        """
        if not self.name or not self.name.strip():
            raise InvalidInputError("Invoice name must not be empty")
        try:
            invoice_type = InvoiceType(str(self.type).upper())
        except ValueError as exc:
            raise InvalidInputError(f"Unknown invoice type '{self.type}'") from exc
        try:
            tag_ids = parse_tag_ids(self.tag_ids)
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"Invalid tag ids: {self.tag_ids!r}") from exc
        return CreateInvoiceInput(
            name=self.name.strip(),
            date=self.date,
            type=invoice_type,
            tag_ids=tag_ids,
        )


@dataclass(frozen=True)
class UpdateInvoiceInput:
    """Partial invoice edit; fields left as None keep their stored value."""

    name: str | None = None
    date: datetime | None = None
    type: InvoiceType | str | None = None
    tag_ids: list[int] | str | None = None

    def validated(self) -> "UpdateInvoiceInput":
        if self.name is not None and not self.name.strip():
            raise InvalidInputError("Invoice name must not be empty")
        invoice_type: InvoiceType | None = None
        if self.type is not None:
            try:
                invoice_type = InvoiceType(str(self.type).upper())
            except ValueError as exc:
                raise InvalidInputError(f"Unknown invoice type '{self.type}'") from exc
        try:
            tag_ids = parse_tag_ids(self.tag_ids)
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"Invalid tag ids: {self.tag_ids!r}") from exc
        return UpdateInvoiceInput(
            name=self.name.strip() if self.name is not None else None,
            date=self.date,
            type=invoice_type,
            tag_ids=tag_ids,
        )


@dataclass(frozen=True)
class CreateTagInput:
    name: str
    description: str | None = None
    colors: str | None = None

    def validated(self) -> "CreateTagInput":
        """Return a copy with defaults filled in.

        Raises:
            InvalidInputError: on an empty name.
        """
        if not self.name or not self.name.strip():
            raise InvalidInputError("Tag name must not be empty")
        return CreateTagInput(
            name=self.name.strip(),
            description=self.description or "",
            colors=self.colors or DEFAULT_TAG_COLOR,
        )


@dataclass(frozen=True)
class UpdateTagInput:
    name: str | None = None
    description: str | None = None
    colors: str | None = None

    def validated(self) -> "UpdateTagInput":
        if self.name is not None and not self.name.strip():
            raise InvalidInputError("Tag name must not be empty")
        return UpdateTagInput(
            name=self.name.strip() if self.name is not None else None,
            description=self.description,
            colors=self.colors,
        )


@dataclass(frozen=True)
class PaginatedInvoices:
    invoices: list[InvoiceRecord]
    total: int
    page: int
    limit: int
    total_pages: int


@dataclass(frozen=True)
class StatusSummary:
    total: int = 0
    uploaded: int = 0
    processing: int = 0
    completed: int = 0
    error: int = 0


@dataclass(frozen=True)
class ProcessingStatus:
    count: int
    has_processing: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "has_processing", self.count > 0)
