from abc import ABC, abstractmethod


class BasePublisher(ABC):
    """Contract for emitting a message onto the broker."""

    @abstractmethod
    def publish(self, topic: str, payload: dict[str, object]) -> None:
        """Emit ``payload`` under ``topic``.

        Publishing is best-effort: there is no acknowledgement, reply or
        delivery guarantee, and callers must not wait for a consumer.
        """
