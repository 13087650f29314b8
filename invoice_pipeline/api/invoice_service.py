import math
from collections.abc import Sequence

from invoice_pipeline.api.models import (
    ALLOWED_MIME_TYPES,
    CreateInvoiceInput,
    PaginatedInvoices,
    ProcessingStatus,
    StatusSummary,
    UpdateInvoiceInput,
    UploadedFile,
)
from invoice_pipeline.database.models import InvoiceRecord
from invoice_pipeline.database.repositories.invoice_repository import InvoiceRepository
from invoice_pipeline.database.repositories.tag_repository import TagRepository
from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.base import BasePublisher
from invoice_pipeline.storage.base import BaseBlobStore, build_object_key
from invoice_pipeline.workflow.exceptions import InvalidInputError
from invoice_pipeline.workflow.messages import PROCESS_INVOICE, ProcessInvoiceMessage
from invoice_pipeline.workflow.status import InvoiceEvent, InvoiceStatus, transition


def _unique_tag_ids(tag_ids: object) -> list[int]:
    return list(dict.fromkeys(tag_ids)) if isinstance(tag_ids, list) else []


class InvoiceService:
    """Invoice ingestion and queries on the public API side."""

    def __init__(
        self,
        repository: InvoiceRepository,
        blob_store: BaseBlobStore,
        publisher: BasePublisher,
        max_upload_bytes: int = 10 * 1024 * 1024,
        tag_repository: TagRepository | None = None,
    ) -> None:
        self._repository = repository
        self._blob_store = blob_store
        self._publisher = publisher
        self._max_upload_bytes = max_upload_bytes
        self._tag_repository = tag_repository

    def create_invoice(
        self,
        invoice_input: CreateInvoiceInput,
        user_id: int,
        file: UploadedFile | None,
    ) -> InvoiceRecord:
        """Store the file, record the invoice and hand it to the OCR service.

        The status is flipped to PROCESSING before ``process_invoice`` is
        published. A crash between the two leaves the invoice in PROCESSING
        with no message in flight.

        Raises:
            InvalidInputError: if the file is missing, empty, too large or of
                a disallowed type, or the input fields or tag ids are invalid.
        """
        file = self._validate_file(file)
        invoice_input = invoice_input.validated()
        tag_ids = _unique_tag_ids(invoice_input.tag_ids)
        self._check_tags(tag_ids, user_id)

        locator = self._blob_store.put(
            file.content,
            build_object_key(user_id, file.file_name),
            file.content_type,
        )
        invoice = self._repository.create(
            user_id=user_id,
            name=invoice_input.name,
            date=invoice_input.date,
            type=str(invoice_input.type),
            file_path=locator,
            tag_ids=tag_ids,
        )
        Log.info(f"Created invoice {invoice.id} for user {user_id} at {locator}")

        processing = transition(invoice.status, InvoiceEvent.DISPATCHED)
        self._repository.update_status(invoice.id, processing.value)

        message = ProcessInvoiceMessage.from_file(invoice.id, file.content, file.file_name)
        self._publisher.publish(PROCESS_INVOICE, message.to_payload())
        Log.info(f"Sent invoice {invoice.id} to OCR service")

        return invoice.with_status(processing.value)

    def find_one(self, invoice_id: int, user_id: int) -> InvoiceRecord:
        return self._repository.find_for_user(invoice_id, user_id)

    def find_all(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 10,
        tag_ids: Sequence[int] | None = None,
    ) -> PaginatedInvoices:
        if page < 1 or limit < 1:
            raise InvalidInputError("page and limit must be positive")
        invoices = self._repository.list_for_user(
            user_id, limit=limit, offset=(page - 1) * limit, tag_ids=tag_ids
        )
        total = self._repository.count_for_user(user_id, tag_ids=tag_ids)
        return PaginatedInvoices(
            invoices=invoices,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def find_by_status(
        self,
        user_id: int,
        status: InvoiceStatus | str,
        tag_ids: Sequence[int] | None = None,
    ) -> list[InvoiceRecord]:
        try:
            status = InvoiceStatus(str(status).upper())
        except ValueError as exc:
            raise InvalidInputError(f"Unknown invoice status '{status}'") from exc
        return self._repository.find_by_status(user_id, status.value, tag_ids)

    def get_processing_status(self, user_id: int) -> ProcessingStatus:
        count = self._repository.count_for_user(
            user_id, status=InvoiceStatus.PROCESSING.value
        )
        return ProcessingStatus(count=count)

    def get_status_summary(self, user_id: int) -> StatusSummary:
        counts = self._repository.status_counts(user_id)
        return StatusSummary(
            total=sum(counts.values()),
            uploaded=counts.get(InvoiceStatus.UPLOADED.value, 0),
            processing=counts.get(InvoiceStatus.PROCESSING.value, 0),
            completed=counts.get(InvoiceStatus.COMPLETED.value, 0),
            error=counts.get(InvoiceStatus.ERROR.value, 0),
        )

    def update(
        self,
        invoice_id: int,
        invoice_input: UpdateInvoiceInput,
        user_id: int,
        file: UploadedFile | None = None,
    ) -> InvoiceRecord:
        """Edit an invoice the user owns, optionally replacing its file.

        A replacement file is stored under a fresh key and the previous blob
        is deleted once the row points at the new one. Tag links are replaced
        only when a non-empty tag list is given. The status is left alone and
        nothing is re-published.

        Raises:
            InvoiceNotFoundError: if the invoice does not exist or belongs to
                someone else.
            InvalidInputError: on an invalid replacement file, field or tag id.
        """
        invoice = self._repository.find_for_user(invoice_id, user_id)
        if file is not None:
            file = self._validate_file(file)
        invoice_input = invoice_input.validated()
        tag_ids = _unique_tag_ids(invoice_input.tag_ids)
        self._check_tags(tag_ids, user_id)

        file_path = invoice.file_path
        if file is not None:
            file_path = self._blob_store.put(
                file.content,
                build_object_key(user_id, file.file_name),
                file.content_type,
            )
        self._repository.update(
            invoice_id,
            name=invoice_input.name if invoice_input.name is not None else invoice.name,
            date=invoice_input.date if invoice_input.date is not None else invoice.date,
            type=str(invoice_input.type) if invoice_input.type is not None else invoice.type,
            file_path=file_path,
            tag_ids=tag_ids or None,
        )
        if file is not None and invoice.file_path:
            self._blob_store.delete(invoice.file_path)
            Log.info(f"Replaced file of invoice {invoice_id}: {invoice.file_path} -> {file_path}")
        Log.info(f"Updated invoice {invoice_id} for user {user_id}")
        return self._repository.find_for_user(invoice_id, user_id)

    def remove(self, invoice_id: int, user_id: int) -> None:
        """Delete an invoice, its data, its tag links and its stored file."""
        invoice = self._repository.find_for_user(invoice_id, user_id)
        if invoice.file_path:
            self._blob_store.delete(invoice.file_path)
        self._repository.delete(invoice_id)
        Log.info(f"Deleted invoice {invoice_id} for user {user_id}")

    def _validate_file(self, file: UploadedFile | None) -> UploadedFile:
        if file is None or not file.content:
            raise InvalidInputError("File is required for invoice creation")
        if len(file.content) > self._max_upload_bytes:
            raise InvalidInputError(
                f"File exceeds the {self._max_upload_bytes} byte upload limit"
            )
        if file.content_type not in ALLOWED_MIME_TYPES:
            raise InvalidInputError(f"File type not allowed: {file.content_type}")
        return file

    def _check_tags(self, tag_ids: list[int], user_id: int) -> None:
        if self._tag_repository is None or not tag_ids:
            return
        if self._tag_repository.count_owned(tag_ids, user_id) != len(set(tag_ids)):
            raise InvalidInputError(f"Unknown tag ids for user {user_id}: {tag_ids}")
