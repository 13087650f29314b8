import pymupdf

from invoice_pipeline.ocr.exceptions import TextExtractionError
from invoice_pipeline.ocr.extractors.base import BaseTextExtractor


class PyMuPdfExtractor(BaseTextExtractor):
    """Reads the PDF text layer with PyMuPDF."""

    def extract(self, data: bytes) -> str:
        try:
            with pymupdf.open(stream=data, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
        except Exception as exc:
            raise TextExtractionError(f"pymupdf extraction failed: {exc}") from exc
        return "\n".join(pages).strip()
