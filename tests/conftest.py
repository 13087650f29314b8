import io
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from invoice_pipeline.database.models import InvoiceDataRecord, InvoiceRecord
from invoice_pipeline.workflow.exceptions import InvalidTransitionError, InvoiceNotFoundError
from invoice_pipeline.workflow.status import InvoiceEvent, InvoiceStatus


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page invoice PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Invoice 2025-042")
    c.drawString(72, 700, "Total: 100.00 EUR")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


def _image_bytes(image_format: str) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (120, 40), "white").save(buf, format=image_format)
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG")


class InMemoryInvoiceRepository:
    """Dict-backed stand-in for InvoiceRepository with the same method surface."""

    def __init__(self) -> None:
        self.invoices: dict[int, InvoiceRecord] = {}
        self.data: list[InvoiceDataRecord] = []
        self.status_history: list[tuple[int, str]] = []
        self._next_id = 1
        self._next_data_id = 1

    def seed(self, invoice_id: int, status: str, user_id: int = 1) -> InvoiceRecord:
        record = InvoiceRecord(
            id=invoice_id,
            user_id=user_id,
            name=f"invoice-{invoice_id}",
            file_path=f"s3://bucket/invoices/{user_id}/{invoice_id}.pdf",
            date=datetime(2025, 6, 17, tzinfo=timezone.utc),
            type="RECEIVED",
            status=status,
            created_at=datetime.now(timezone.utc),
        )
        self.invoices[invoice_id] = record
        self._next_id = max(self._next_id, invoice_id + 1)
        return record

    def create(
        self,
        *,
        user_id: int,
        name: str,
        date: datetime,
        type: str,
        file_path: str,
        tag_ids: Sequence[int] = (),
    ) -> InvoiceRecord:
        record = InvoiceRecord(
            id=self._next_id,
            user_id=user_id,
            name=name,
            file_path=file_path,
            date=date,
            type=type,
            status=InvoiceStatus.UPLOADED.value,
            created_at=datetime.now(timezone.utc),
            tag_ids=list(tag_ids),
        )
        self.invoices[record.id] = record
        self.status_history.append((record.id, record.status))
        self._next_id += 1
        return record

    def find_by_id(self, invoice_id: int) -> InvoiceRecord:
        record = self.invoices.get(invoice_id)
        if record is None:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return replace(
            record,
            invoice_data=[d for d in self.data if d.invoice_id == invoice_id],
        )

    def find_for_user(self, invoice_id: int, user_id: int) -> InvoiceRecord:
        record = self.find_by_id(invoice_id)
        if record.user_id != user_id:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return record

    def _for_user(self, user_id: int, tag_ids: Sequence[int] | None) -> list[InvoiceRecord]:
        records = [r for r in self.invoices.values() if r.user_id == user_id]
        if tag_ids:
            records = [r for r in records if set(r.tag_ids) & set(tag_ids)]
        return sorted(records, key=lambda r: r.id, reverse=True)

    def list_for_user(
        self,
        user_id: int,
        *,
        limit: int,
        offset: int,
        tag_ids: Sequence[int] | None = None,
    ) -> list[InvoiceRecord]:
        return self._for_user(user_id, tag_ids)[offset:offset + limit]

    def count_for_user(
        self,
        user_id: int,
        *,
        status: str | None = None,
        tag_ids: Sequence[int] | None = None,
    ) -> int:
        records = self._for_user(user_id, tag_ids)
        if status is not None:
            records = [r for r in records if r.status == status]
        return len(records)

    def find_by_status(
        self,
        user_id: int,
        status: str,
        tag_ids: Sequence[int] | None = None,
    ) -> list[InvoiceRecord]:
        return [r for r in self._for_user(user_id, tag_ids) if r.status == status]

    def status_counts(self, user_id: int) -> dict[str, int]:
        counts: dict[str, int] = {}
        for record in self._for_user(user_id, None):
            counts[record.status] = counts.get(record.status, 0) + 1
        return counts

    def update_status(self, invoice_id: int, status: str) -> None:
        record = self.find_by_id(invoice_id)
        self.invoices[invoice_id] = record.with_status(status)
        self.status_history.append((invoice_id, status))

    def update(
        self,
        invoice_id: int,
        *,
        name: str,
        date: datetime,
        type: str,
        file_path: str | None,
        tag_ids: Sequence[int] | None = None,
    ) -> None:
        record = self.find_by_id(invoice_id)
        self.invoices[invoice_id] = replace(
            record,
            name=name,
            date=date,
            type=type,
            file_path=file_path,
            tag_ids=list(tag_ids) if tag_ids is not None else record.tag_ids,
        )

    def complete_with_data(
        self,
        invoice_id: int,
        content: str,
        amount: float,
        *,
        expected_status: str = InvoiceStatus.PROCESSING.value,
    ) -> InvoiceDataRecord:
        record = self.find_by_id(invoice_id)
        if record.status != expected_status:
            raise InvalidTransitionError(expected_status, InvoiceEvent.ANALYSIS_STORED.value)
        data = InvoiceDataRecord(
            id=self._next_data_id,
            content=content,
            amount=amount,
            invoice_id=invoice_id,
        )
        self._next_data_id += 1
        self.data.append(data)
        self.update_status(invoice_id, InvoiceStatus.COMPLETED.value)
        return data

    def delete(self, invoice_id: int) -> None:
        self.find_by_id(invoice_id)
        del self.invoices[invoice_id]
        self.data = [d for d in self.data if d.invoice_id != invoice_id]


@pytest.fixture()
def memory_repo() -> InMemoryInvoiceRepository:
    return InMemoryInvoiceRepository()
