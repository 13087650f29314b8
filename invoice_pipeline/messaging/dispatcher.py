from collections.abc import Callable, Mapping
from typing import Any

from invoice_pipeline.logging.logger import Log

MessageHandler = Callable[[Any], object]


class MessageDispatcher:
    """Route one inbound message to its topic handler and contain failures."""

    def __init__(self, handlers: Mapping[str, MessageHandler]) -> None:
        self._handlers = dict(handlers)

    @property
    def topics(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def handles(self, topic: str) -> bool:
        return topic in self._handlers

    def dispatch(self, topic: str, payload: Any) -> None:
        """Run the handler for ``topic``. Never raises.

        The broker never sees a failed delivery: handler exceptions are
        logged and the message is considered consumed.
        """
        handler = self._handlers.get(topic)
        if handler is None:
            Log.warning(f"No handler registered for topic '{topic}', dropping message")
            return
        Log.debug(f"Dispatching '{topic}' message")
        try:
            handler(payload)
        except Exception as exc:
            Log.error(f"Handler for '{topic}' failed: {exc}")
