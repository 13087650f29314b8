"""Consumers of the messages that finalize an invoice on the public API side.

None of these handlers raise: every failure is logged and, where an invoice
id is known, converted into an ERROR status.
"""

from typing import Any

from invoice_pipeline.database.repositories.invoice_repository import InvoiceRepository
from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.base import BasePublisher
from invoice_pipeline.workflow.exceptions import (
    InvalidTransitionError,
    InvoiceNotFoundError,
    MessageFormatError,
)
from invoice_pipeline.workflow.messages import (
    ANALYZE_INVOICE,
    INVOICE_DATA,
    OCR_RESULT,
    PROCESSING_ERROR,
    AnalyzeInvoiceMessage,
    InvoiceDataMessage,
    OcrResultMessage,
    ProcessingErrorMessage,
    recover_invoice_id,
)
from invoice_pipeline.workflow.status import InvoiceEvent, InvoiceStatus, transition


class InvoiceMessageHandlers:
    def __init__(self, repository: InvoiceRepository, publisher: BasePublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    def as_mapping(self) -> dict[str, Any]:
        return {
            INVOICE_DATA: self.handle_invoice_data,
            PROCESSING_ERROR: self.handle_processing_error,
            OCR_RESULT: self.handle_ocr_result,
        }

    def handle_invoice_data(self, payload: Any) -> None:
        """Persist the analysis result and mark the invoice COMPLETED.

        A message for an invoice that is no longer PROCESSING (a redelivery,
        or one that already failed) is dropped without writing anything.
        """
        try:
            message = InvoiceDataMessage.from_payload(payload)
        except MessageFormatError as exc:
            Log.error(f"Dropping malformed invoice_data message: {exc}")
            self._fail_if_identifiable(payload, str(exc))
            return

        Log.info(f"Received invoice data for invoice {message.invoice_id}")
        try:
            invoice = self._repository.find_by_id(message.invoice_id)
            transition(invoice.status, InvoiceEvent.ANALYSIS_STORED)
            data = self._repository.complete_with_data(
                message.invoice_id,
                message.content,
                message.amount,
                expected_status=invoice.status,
            )
        except InvalidTransitionError as exc:
            Log.warning(
                f"Ignoring invoice_data for invoice {message.invoice_id}: {exc}"
            )
            return
        except InvoiceNotFoundError as exc:
            Log.error(f"Dropping invoice_data: {exc}")
            return
        except Exception as exc:
            Log.error(f"Error adding invoice data for invoice {message.invoice_id}: {exc}")
            self._mark_error(message.invoice_id)
            return
        Log.info(
            f"Added invoice data {data.id} for invoice {message.invoice_id}: "
            f"amount={data.amount}"
        )
        Log.info(f"Updated invoice {message.invoice_id} status to {InvoiceStatus.COMPLETED}")

    def handle_processing_error(self, payload: Any) -> None:
        try:
            message = ProcessingErrorMessage.from_payload(payload)
        except MessageFormatError as exc:
            Log.error(f"Dropping malformed processing_error message: {exc}")
            return
        Log.warning(f"Received processing error for invoice {message.invoice_id}: {message.error}")
        self._mark_error(message.invoice_id)

    def handle_ocr_result(self, payload: Any) -> None:
        """Forward legacy OCR output to the text treatment service."""
        try:
            message = OcrResultMessage.from_payload(payload)
        except MessageFormatError as exc:
            Log.error(f"Dropping malformed ocr_result message: {exc}")
            self._fail_if_identifiable(payload, str(exc))
            return
        Log.info(f"Received OCR result for invoice {message.invoice_id}")
        try:
            self._publisher.publish(
                ANALYZE_INVOICE,
                AnalyzeInvoiceMessage(
                    invoice_id=message.invoice_id, content=message.content
                ).to_payload(),
            )
        except Exception as exc:
            Log.error(f"Error forwarding OCR result for invoice {message.invoice_id}: {exc}")
            self._mark_error(message.invoice_id)
            return
        Log.info(f"Sent invoice {message.invoice_id} to text treatment service")

    def _mark_error(self, invoice_id: int) -> None:
        try:
            invoice = self._repository.find_by_id(invoice_id)
            target = transition(invoice.status, InvoiceEvent.FAILED)
            self._repository.update_status(invoice_id, target.value)
        except Exception as exc:
            Log.error(f"Could not mark invoice {invoice_id} as {InvoiceStatus.ERROR}: {exc}")
            return
        Log.info(f"Updated invoice {invoice_id} status to {target}")

    def _fail_if_identifiable(self, payload: Any, reason: str) -> None:
        invoice_id = recover_invoice_id(payload)
        if invoice_id is not None:
            Log.warning(f"Invoice {invoice_id} failed: {reason}")
            self._mark_error(invoice_id)
