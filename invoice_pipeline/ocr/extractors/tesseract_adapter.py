import io

import pytesseract
from PIL import Image

from invoice_pipeline.ocr.exceptions import TextExtractionError
from invoice_pipeline.ocr.extractors.base import BaseTextExtractor


class TesseractExtractor(BaseTextExtractor):
    """Runs Tesseract OCR over a PNG or JPEG image."""

    def __init__(self, language: str = "fra") -> None:
        self._language = language

    def extract(self, data: bytes) -> str:
        try:
            with Image.open(io.BytesIO(data)) as image:
                text = pytesseract.image_to_string(image.convert("RGB"), lang=self._language)
        except Exception as exc:
            raise TextExtractionError(f"tesseract recognition failed: {exc}") from exc
        return text.strip()
