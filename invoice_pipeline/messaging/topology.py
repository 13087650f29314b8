from kombu import Exchange, Queue, binding

from invoice_pipeline.config.settings import Settings
from invoice_pipeline.workflow.messages import (
    ANALYZE_INVOICE,
    INVOICE_DATA,
    OCR_RESULT,
    PROCESS_INVOICE,
    PROCESSING_ERROR,
)

SERVICE_TOPICS: dict[str, tuple[str, ...]] = {
    "public_api": (INVOICE_DATA, PROCESSING_ERROR, OCR_RESULT),
    "ocr": (PROCESS_INVOICE,),
    "text_treatment": (ANALYZE_INVOICE,),
}


def build_exchange(settings: Settings) -> Exchange:
    """Topic exchange shared by every service; routing key = message topic."""
    return Exchange(settings.broker_exchange, type="topic", durable=True)


def build_queue(settings: Settings, service_role: str) -> Queue:
    """Queue owned by one service, bound to each topic it consumes."""
    topics = SERVICE_TOPICS.get(service_role)
    if topics is None:
        raise ValueError(
            f"Unknown service role '{service_role}'. Choose from: {list(SERVICE_TOPICS)}"
        )
    exchange = build_exchange(settings)
    return Queue(
        f"{service_role}_queue",
        [binding(exchange, routing_key=topic) for topic in topics],
        durable=True,
    )
