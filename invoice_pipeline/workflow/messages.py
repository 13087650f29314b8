"""Broker message contracts exchanged between the three services.

| topic              | producer        | consumer        |
|--------------------|-----------------|-----------------|
| process_invoice    | public API      | OCR service     |
| analyze_invoice    | OCR service     | text treatment  |
| invoice_data       | text treatment  | public API      |
| processing_error   | any stage       | public API      |
| ocr_result         | legacy OCR      | public API      |
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Any

from invoice_pipeline.workflow.exceptions import MessageFormatError

PROCESS_INVOICE = "process_invoice"
ANALYZE_INVOICE = "analyze_invoice"
INVOICE_DATA = "invoice_data"
PROCESSING_ERROR = "processing_error"
OCR_RESULT = "ocr_result"


def _require_mapping(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise MessageFormatError("Message payload must be an object")
    return payload


def _invoice_id(payload: dict[str, Any]) -> int:
    if "invoice_id" not in payload:
        raise MessageFormatError("Missing required field: invoice_id")
    raw = payload["invoice_id"]
    if isinstance(raw, bool):
        raise MessageFormatError("'invoice_id' must be an integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    raise MessageFormatError("'invoice_id' must be an integer")


def recover_invoice_id(payload: Any) -> int | None:
    """Best-effort invoice id from a payload that failed validation.

    Applies the same coercion as the message parsers, so a failure path sees
    exactly the ids a successful parse would have accepted.
    """
    if not isinstance(payload, dict):
        return None
    try:
        return _invoice_id(payload)
    except MessageFormatError:
        return None


def _string(payload: dict[str, Any], field: str) -> str:
    if field not in payload:
        raise MessageFormatError(f"Missing required field: {field}")
    value = payload[field]
    if not isinstance(value, str):
        raise MessageFormatError(f"'{field}' must be a string")
    return value


def _number(payload: dict[str, Any], field: str) -> float:
    if field not in payload:
        raise MessageFormatError(f"Missing required field: {field}")
    value = payload[field]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MessageFormatError(f"'{field}' must be a number")
    return float(value)


@dataclass(frozen=True)
class ProcessInvoiceMessage:
    """Raw uploaded file handed to the OCR service."""

    invoice_id: int
    content: str
    file_name: str

    @classmethod
    def from_file(cls, invoice_id: int, data: bytes, file_name: str) -> "ProcessInvoiceMessage":
        return cls(
            invoice_id=invoice_id,
            content=base64.b64encode(data).decode("ascii"),
            file_name=file_name,
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "ProcessInvoiceMessage":
        data = _require_mapping(payload)
        return cls(
            invoice_id=_invoice_id(data),
            content=_string(data, "content"),
            file_name=_string(data, "fileName"),
        )

    def to_payload(self) -> dict[str, object]:
        return {
            "invoice_id": self.invoice_id,
            "content": self.content,
            "fileName": self.file_name,
        }

    def file_bytes(self) -> bytes:
        """Decode the base64 file content.

        Raises:
            MessageFormatError: if ``content`` is not valid base64.
        """
        try:
            return base64.b64decode(self.content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MessageFormatError(f"'content' is not valid base64: {exc}") from exc


@dataclass(frozen=True)
class AnalyzeInvoiceMessage:
    invoice_id: int
    content: str

    @classmethod
    def from_payload(cls, payload: Any) -> "AnalyzeInvoiceMessage":
        data = _require_mapping(payload)
        return cls(invoice_id=_invoice_id(data), content=_string(data, "content"))

    def to_payload(self) -> dict[str, object]:
        return {"invoice_id": self.invoice_id, "content": self.content}


@dataclass(frozen=True)
class OcrResultMessage:
    """Legacy OCR output routed through the public API."""

    invoice_id: int
    content: str

    @classmethod
    def from_payload(cls, payload: Any) -> "OcrResultMessage":
        data = _require_mapping(payload)
        return cls(invoice_id=_invoice_id(data), content=_string(data, "content"))

    def to_payload(self) -> dict[str, object]:
        return {"invoice_id": self.invoice_id, "content": self.content}


@dataclass(frozen=True)
class InvoiceDataMessage:
    invoice_id: int
    content: str
    amount: float

    @classmethod
    def from_payload(cls, payload: Any) -> "InvoiceDataMessage":
        data = _require_mapping(payload)
        return cls(
            invoice_id=_invoice_id(data),
            content=_string(data, "content"),
            amount=_number(data, "amount"),
        )

    def to_payload(self) -> dict[str, object]:
        return {
            "invoice_id": self.invoice_id,
            "content": self.content,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class ProcessingErrorMessage:
    invoice_id: int
    error: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ProcessingErrorMessage":
        data = _require_mapping(payload)
        error = data.get("error", "")
        return cls(
            invoice_id=_invoice_id(data),
            error=error if isinstance(error, str) else str(error),
        )

    def to_payload(self) -> dict[str, object]:
        return {"invoice_id": self.invoice_id, "error": self.error}
