from kombu import Connection, Exchange

from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.base import BasePublisher


class KombuPublisher(BasePublisher):
    """Publishes JSON messages to an AMQP topic exchange through kombu.

    A single attempt is made per message; a broker error propagates to the
    caller instead of being retried here.
    """

    def __init__(self, connection: Connection, exchange: Exchange) -> None:
        self._connection = connection
        self._exchange = exchange

    def publish(self, topic: str, payload: dict[str, object]) -> None:
        producer = self._connection.Producer(serializer="json")
        producer.publish(
            payload,
            exchange=self._exchange,
            routing_key=topic,
            declare=[self._exchange],
        )
        Log.info(f"Published '{topic}' message for invoice {payload.get('invoice_id')}")
