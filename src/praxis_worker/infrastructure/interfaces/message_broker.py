"""Abstract interfaces for message broker operations."""

from abc import ABC, abstractmethod

from praxis_worker.domain.models import QueueMessage


class MessagePublisher(ABC):
    """Abstract base class for publishing messages to a broker."""

    @abstractmethod
    def publish(self, routing_key: str, payload: dict) -> None:
        """
        Publishes a message to the broker.

        Args:
            routing_key: The routing key for message routing.
            payload: The message data as a dictionary.

        Raises:
            EventPublishError: If publishing fails.
        """


class MessageBroker(MessagePublisher, ABC):
    """Abstract base class for a polled task queue."""

    @abstractmethod
    def setup(self) -> None:
        """Creates the queue and its dead-letter queue if they do not exist."""

    @abstractmethod
    def receive(self, max_messages: int, wait_time_seconds: int) -> list[QueueMessage]:
        """
        Long-polls the queue for a batch of messages.

        Args:
            max_messages: Upper bound on the batch size.
            wait_time_seconds: How long to wait for the first message.

        Returns:
            Received messages, possibly empty when the wait expired.
        """

    @abstractmethod
    def acknowledge(self, receipt_handle: int) -> None:
        """
        Deletes a processed message from the queue.

        Args:
            receipt_handle: The handle of the received message.
        """

    @abstractmethod
    def reject(self, receipt_handle: int) -> None:
        """
        Returns a message to the queue for redelivery or dead-lettering.

        Args:
            receipt_handle: The handle of the received message.
        """
