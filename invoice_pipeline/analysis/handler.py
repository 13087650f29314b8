from typing import Any

from invoice_pipeline.analysis.analyzer import InvoiceAnalyzer
from invoice_pipeline.analysis.models import AnalysisResult
from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.base import BasePublisher
from invoice_pipeline.workflow.exceptions import MessageFormatError
from invoice_pipeline.workflow.messages import (
    INVOICE_DATA,
    PROCESSING_ERROR,
    AnalyzeInvoiceMessage,
    InvoiceDataMessage,
    ProcessingErrorMessage,
    recover_invoice_id,
)


class TextTreatmentHandler:
    """Consumer of ``analyze_invoice``.

    A well-formed message is always answered with ``invoice_data``. A
    malformed one is answered with ``processing_error`` when its invoice id
    can still be read, and dropped otherwise.
    """

    def __init__(self, analyzer: InvoiceAnalyzer, publisher: BasePublisher) -> None:
        self._analyzer = analyzer
        self._publisher = publisher

    def handle(self, payload: Any) -> AnalysisResult | None:
        try:
            message = AnalyzeInvoiceMessage.from_payload(payload)
        except MessageFormatError as exc:
            Log.error(f"Dropping malformed analyze_invoice message: {exc}")
            invoice_id = recover_invoice_id(payload)
            if invoice_id is not None:
                self._publisher.publish(
                    PROCESSING_ERROR,
                    ProcessingErrorMessage(invoice_id=invoice_id, error=str(exc)).to_payload(),
                )
            return None

        Log.info(f"Analyzing invoice {message.invoice_id} ({len(message.content)} chars)")
        result = self._analyzer.analyze(message.invoice_id, message.content)
        self._publisher.publish(
            INVOICE_DATA,
            InvoiceDataMessage(
                invoice_id=int(message.invoice_id),
                content=result.content,
                amount=result.amount,
            ).to_payload(),
        )
        return result
