class OcrError(Exception):
    """Base exception for OCR service errors."""


class UnknownFormatError(OcrError):
    """Raised when a file's leading bytes match no known signature."""


class UnsupportedFormatError(OcrError):
    """Raised when a file is recognised but text cannot be extracted from it."""


class TextExtractionError(OcrError):
    """Raised by an extractor adapter when extraction fails for any reason."""
