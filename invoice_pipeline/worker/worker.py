import time
from typing import Any

from kombu import Connection, Queue
from kombu.message import Message

from invoice_pipeline.config.settings import Settings
from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.dispatcher import MessageDispatcher


class Worker:
    """Consume loop: drain -> dispatch -> ack."""

    def __init__(
        self,
        connection: Connection,
        queue: Queue,
        dispatcher: MessageDispatcher,
        settings: Settings,
    ) -> None:
        self._connection = connection
        self._queue = queue
        self._dispatcher = dispatcher
        self._settings = settings
        self._handled = 0

    def run(self, max_messages: int | None = None) -> None:
        """Main consume loop. Runs forever until interrupted.

        If max_messages is set, stop after handling that many messages (for testing).
        """
        Log.info(f"Worker started, consuming from '{self._queue.name}'")
        self._handled = 0
        try:
            while not self._is_done(max_messages):
                try:
                    self._consume(max_messages)
                except self._connection.recoverable_connection_errors as exc:
                    Log.warning(f"Broker connection error, will retry: {exc}")
                    time.sleep(self._settings.broker_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _consume(self, max_messages: int | None) -> None:
        with self._connection.Consumer(
            queues=[self._queue],
            callbacks=[self._on_message],
            accept=["json"],
        ):
            while not self._is_done(max_messages):
                try:
                    self._connection.drain_events(
                        timeout=self._settings.broker_poll_interval_seconds
                    )
                except TimeoutError:
                    Log.debug("No messages available, waiting")

    def _on_message(self, body: Any, message: Message) -> None:
        topic = message.delivery_info.get("routing_key", "")
        self._dispatcher.dispatch(topic, body)
        message.ack()
        self._handled += 1

    def _is_done(self, max_messages: int | None) -> bool:
        return max_messages is not None and self._handled >= max_messages
