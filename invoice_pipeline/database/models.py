from dataclasses import dataclass, field, replace
from datetime import datetime


@dataclass(frozen=True)
class InvoiceDataRecord:
    """Represents a row from the invoice_data table."""

    id: int
    content: str
    amount: float
    invoice_id: int


@dataclass(frozen=True)
class InvoiceRecord:
    """Represents a row from the invoices table, with its tags and data."""

    id: int
    user_id: int
    name: str
    file_path: str | None
    date: datetime
    type: str
    status: str
    created_at: datetime | None = None
    tag_ids: list[int] = field(default_factory=list)
    invoice_data: list[InvoiceDataRecord] = field(default_factory=list)

    def with_status(self, status: str) -> "InvoiceRecord":
        return replace(self, status=status)


@dataclass(frozen=True)
class TagRecord:
    """Represents a row from the tags table."""

    id: int
    user_id: int
    name: str
    description: str
    colors: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class TagUsageRecord:
    tag: TagRecord
    usage_count: int
