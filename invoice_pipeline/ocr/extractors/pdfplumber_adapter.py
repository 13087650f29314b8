import io

import pdfplumber

from invoice_pipeline.ocr.exceptions import TextExtractionError
from invoice_pipeline.ocr.extractors.base import BaseTextExtractor


class PdfPlumberExtractor(BaseTextExtractor):
    """Reads the PDF text layer with pdfplumber."""

    def extract(self, data: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise TextExtractionError(f"pdfplumber extraction failed: {exc}") from exc
        return "\n".join(pages).strip()
