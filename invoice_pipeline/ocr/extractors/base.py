from abc import ABC, abstractmethod


class BaseTextExtractor(ABC):
    """Contract for all text extraction adapters (PDF text layer, image OCR)."""

    @abstractmethod
    def extract(self, data: bytes) -> str:
        """Extract plain text from raw file bytes.

        Args:
            data: Raw file content.

        Returns:
            Extracted text as a single stripped string.

        Raises:
            TextExtractionError: if extraction fails for any reason.
        """
