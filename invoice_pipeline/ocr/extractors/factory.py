from invoice_pipeline.config.settings import Settings
from invoice_pipeline.ocr.extractors.base import BaseTextExtractor
from invoice_pipeline.ocr.extractors.pdfplumber_adapter import PdfPlumberExtractor
from invoice_pipeline.ocr.extractors.pymupdf_adapter import PyMuPdfExtractor
from invoice_pipeline.ocr.extractors.tesseract_adapter import TesseractExtractor


class PdfExtractorFactory:
    """Creates the PDF text-layer extractor named by ``pdf_engine``."""

    ADAPTERS: dict[str, type[BaseTextExtractor]] = {
        "pdfplumber": PdfPlumberExtractor,
        "pymupdf": PyMuPdfExtractor,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseTextExtractor:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()


def build_image_extractor(settings: Settings) -> BaseTextExtractor:
    return TesseractExtractor(language=settings.ocr_language)
