"""In-memory stand-in for the broker.

Useful for local development, tests, and running all three services in one
process. Payloads go through a JSON round-trip so handlers see exactly what
they would receive from the wire.
"""

import json
from collections import deque

from invoice_pipeline.logging.logger import Log
from invoice_pipeline.messaging.base import BasePublisher
from invoice_pipeline.messaging.dispatcher import MessageDispatcher


class InProcessBus(BasePublisher):
    """Queues published messages and delivers them on ``drain()``."""

    def __init__(self) -> None:
        self.published: list[tuple[str, dict[str, object]]] = []
        self._pending: deque[tuple[str, dict[str, object]]] = deque()
        self._dispatchers: list[MessageDispatcher] = []

    def subscribe(self, dispatcher: MessageDispatcher) -> None:
        self._dispatchers.append(dispatcher)

    def publish(self, topic: str, payload: dict[str, object]) -> None:
        wire_payload = json.loads(json.dumps(payload))
        self.published.append((topic, wire_payload))
        self._pending.append((topic, wire_payload))
        Log.debug(f"Queued '{topic}' message in-process")

    def topics(self) -> list[str]:
        return [topic for topic, _payload in self.published]

    def drain(self, max_messages: int | None = None) -> int:
        """Deliver queued messages, including ones published while draining.

        Returns the number of messages delivered. A message with no
        subscriber is dropped, as a broker would without a bound queue.
        """
        delivered = 0
        while self._pending:
            if max_messages is not None and delivered >= max_messages:
                break
            topic, payload = self._pending.popleft()
            for dispatcher in self._dispatchers:
                if dispatcher.handles(topic):
                    dispatcher.dispatch(topic, payload)
            delivered += 1
        return delivered
