"""Consumer of ``process_invoice`` messages.

Per message: received -> format detected -> extracted -> ``analyze_invoice``
published, or received -> rejected -> ``processing_error`` published.
"""

from dataclasses import dataclass
from typing import Any

from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.base import BasePublisher
from invoice_pipeline.ocr.exceptions import OcrError
from invoice_pipeline.ocr.extraction import DegradedExtractionPolicy
from invoice_pipeline.ocr.formats import detect_format
from invoice_pipeline.workflow.exceptions import MessageFormatError
from invoice_pipeline.workflow.messages import (
    ANALYZE_INVOICE,
    PROCESSING_ERROR,
    AnalyzeInvoiceMessage,
    ProcessInvoiceMessage,
    ProcessingErrorMessage,
    recover_invoice_id,
)


@dataclass(frozen=True)
class OcrOutcome:
    invoice_id: int | None
    file_format: str | None = None
    content: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class OcrHandler:
    """Turns an uploaded blob into plain text and forwards it for analysis."""

    def __init__(
        self,
        extraction: DegradedExtractionPolicy,
        publisher: BasePublisher,
    ) -> None:
        self._extraction = extraction
        self._publisher = publisher

    def handle(self, payload: Any) -> OcrOutcome:
        try:
            message = ProcessInvoiceMessage.from_payload(payload)
        except MessageFormatError as exc:
            Log.error(f"Dropping malformed process_invoice message: {exc}")
            invoice_id = recover_invoice_id(payload)
            if invoice_id is not None:
                self._publish_error(invoice_id, str(exc))
            return OcrOutcome(invoice_id=None, error=str(exc))

        Log.info(f"Received invoice {message.invoice_id} ({message.file_name}) for OCR")
        try:
            data = message.file_bytes()
            file_format = detect_format(data)
        except (MessageFormatError, OcrError) as exc:
            Log.error(f"Invoice {message.invoice_id} rejected: {exc}")
            self._publish_error(message.invoice_id, str(exc))
            return OcrOutcome(invoice_id=message.invoice_id, error=str(exc))

        text = self._extraction.extract_text(data, file_format.mime)
        Log.info(
            f"Extracted {len(text)} chars from {file_format.name} "
            f"for invoice {message.invoice_id}"
        )
        self._publisher.publish(
            ANALYZE_INVOICE,
            AnalyzeInvoiceMessage(invoice_id=message.invoice_id, content=text).to_payload(),
        )
        return OcrOutcome(
            invoice_id=message.invoice_id,
            file_format=file_format.name,
            content=text,
        )

    def _publish_error(self, invoice_id: int, error: str) -> None:
        self._publisher.publish(
            PROCESSING_ERROR,
            ProcessingErrorMessage(invoice_id=invoice_id, error=error).to_payload(),
        )
