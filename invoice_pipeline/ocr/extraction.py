from invoice_pipeline.logging.logger import Log
from invoice_pipeline.ocr.extractors.base import BaseTextExtractor
from invoice_pipeline.ocr.formats import IMAGE_MIME_TYPES

PDF_PLACEHOLDER = (
    "PDF document processed successfully. "
    "The text layer could not be read; the document may be scanned or protected."
)
IMAGE_PLACEHOLDER = (
    "Image content extracted successfully. "
    "No readable text was recognised in the image."
)
GENERIC_PLACEHOLDER = "Document processed successfully. No text could be extracted."


class DegradedExtractionPolicy:
    """Never block the pipeline on extraction failure.

    An extractor error, or output shorter than ``min_chars``, is replaced by
    a fixed placeholder so the analysis stage always receives some text.
    """

    def __init__(
        self,
        *,
        pdf_extractor: BaseTextExtractor,
        image_extractor: BaseTextExtractor,
        min_chars: int = 10,
    ) -> None:
        self._pdf_extractor = pdf_extractor
        self._image_extractor = image_extractor
        self._min_chars = min_chars

    def extract_text(self, data: bytes, mime: str) -> str:
        if mime == "application/pdf":
            return self._extract_or_placeholder(self._pdf_extractor, data, PDF_PLACEHOLDER)
        if mime in IMAGE_MIME_TYPES:
            return self._extract_or_placeholder(
                self._image_extractor, data, IMAGE_PLACEHOLDER
            )
        Log.warning(f"No extractor for mime type '{mime}', using placeholder text")
        return GENERIC_PLACEHOLDER

    def _extract_or_placeholder(
        self,
        extractor: BaseTextExtractor,
        data: bytes,
        placeholder: str,
    ) -> str:
        try:
            text = extractor.extract(data)
        except Exception as exc:
            Log.warning(f"Extraction degraded to placeholder: {exc}")
            return placeholder
        if len(text.strip()) < self._min_chars:
            Log.warning(
                f"Extraction yielded {len(text.strip())} chars, using placeholder text"
            )
            return placeholder
        return text
