from kombu import Connection

from invoice_pipeline.analysis.factory import AnalyzerFactory
from invoice_pipeline.analysis.handler import TextTreatmentHandler
from invoice_pipeline.api.invoice_service import InvoiceService
from invoice_pipeline.api.message_handlers import InvoiceMessageHandlers
from invoice_pipeline.api.tag_service import TagService
from invoice_pipeline.config.settings import Settings
from invoice_pipeline.database.connection import close_pool, init_pool
from invoice_pipeline.database.repositories.invoice_repository import InvoiceRepository
from invoice_pipeline.database.repositories.tag_repository import TagRepository
from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.base import BasePublisher
from invoice_pipeline.messaging.dispatcher import MessageDispatcher
from invoice_pipeline.messaging.kombu_publisher import KombuPublisher
from invoice_pipeline.messaging.topology import build_exchange, build_queue
from invoice_pipeline.ocr.extraction import DegradedExtractionPolicy
from invoice_pipeline.ocr.extractors.factory import PdfExtractorFactory, build_image_extractor
from invoice_pipeline.ocr.handler import OcrHandler
from invoice_pipeline.storage.factory import BlobStoreFactory
from invoice_pipeline.worker.worker import Worker
from invoice_pipeline.workflow.messages import ANALYZE_INVOICE, PROCESS_INVOICE


def build_ocr_dispatcher(settings: Settings, publisher: BasePublisher) -> MessageDispatcher:
    extraction = DegradedExtractionPolicy(
        pdf_extractor=PdfExtractorFactory.create(settings),
        image_extractor=build_image_extractor(settings),
        min_chars=settings.min_extracted_chars,
    )
    handler = OcrHandler(extraction, publisher)
    return MessageDispatcher({PROCESS_INVOICE: handler.handle})


def build_text_treatment_dispatcher(
    settings: Settings, publisher: BasePublisher
) -> MessageDispatcher:
    handler = TextTreatmentHandler(AnalyzerFactory.create(settings), publisher)
    return MessageDispatcher({ANALYZE_INVOICE: handler.handle})


def build_public_api_dispatcher(
    repository: InvoiceRepository, publisher: BasePublisher
) -> MessageDispatcher:
    return MessageDispatcher(InvoiceMessageHandlers(repository, publisher).as_mapping())


def build_invoice_service(settings: Settings, publisher: BasePublisher) -> InvoiceService:
    """Ingestion and query entry point for the public API role."""
    return InvoiceService(
        InvoiceRepository(),
        BlobStoreFactory.create(settings),
        publisher,
        max_upload_bytes=settings.max_upload_bytes,
        tag_repository=TagRepository(),
    )


def build_tag_service() -> TagService:
    return TagService(TagRepository())


def build_dispatcher(settings: Settings, publisher: BasePublisher) -> MessageDispatcher:
    role = settings.service_role.lower()
    if role == "public_api":
        return build_public_api_dispatcher(InvoiceRepository(), publisher)
    if role == "ocr":
        return build_ocr_dispatcher(settings, publisher)
    if role == "text_treatment":
        return build_text_treatment_dispatcher(settings, publisher)
    raise ValueError(
        f"Unknown service role '{role}'. Choose from: ['public_api', 'ocr', 'text_treatment']"
    )


def main() -> None:
    """Entry point: settings -> logging -> (pool) -> dispatcher -> consume loop."""
    settings = Settings()
    role = settings.service_role.lower()
    Log.configure(settings.log_level, role)
    uses_database = role == "public_api"
    if uses_database:
        init_pool(settings)

    try:
        with Connection(settings.broker_url) as connection:
            publisher = KombuPublisher(connection, build_exchange(settings))
            dispatcher = build_dispatcher(settings, publisher)
            worker = Worker(connection, build_queue(settings, role), dispatcher, settings)
            worker.run()
    finally:
        if uses_database:
            close_pool()


if __name__ == "__main__":
    main()
