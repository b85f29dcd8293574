"""RabbitMQ message broker implementation."""

import json
import time

from pika.adapters.blocking_connection import BlockingChannel

from praxis_worker.config import QueueConfig, RabbitMQConfig
from praxis_worker.domain.models import QueueMessage
from praxis_worker.exceptions import EventPublishError
from praxis_worker.infrastructure.interfaces import MessageBroker
from praxis_worker.logging import setup_logging

logger = setup_logging()


class RabbitMQBroker(MessageBroker):
    """
    Polled task queue on a RabbitMQ quorum queue.

    The receipt handle of a message is its delivery tag, so acknowledge and
    reject must run on the channel that received it.
    """

    def __init__(
        self,
        channel: BlockingChannel,
        config: RabbitMQConfig,
        poll_interval_seconds: float = 1.0,
    ):
        self._channel = channel
        self._config = config
        self._poll_interval_seconds = poll_interval_seconds

    def publish(self, routing_key: str, payload: dict) -> None:
        """
        Publishes a message to the configured exchange.

        Args:
            routing_key: The routing key for message routing.
            payload: The message data as a dictionary.

        Raises:
            EventPublishError: If publishing fails.
        """
        try:
            self._channel.basic_publish(
                exchange=self._config.exchange_name,
                routing_key=routing_key,
                body=json.dumps(payload),
            )
            logger.info(
                "Message published",
                extra={
                    "exchange": self._config.exchange_name,
                    "routing_key": routing_key,
                },
            )
        except Exception as e:
            logger.exception(
                "Failed to publish message", extra={"routing_key": routing_key}
            )
            raise EventPublishError(routing_key, cause=e) from e

    def receive(self, max_messages: int, wait_time_seconds: int) -> list[QueueMessage]:
        """
        Waits up to `wait_time_seconds` for the first message, then drains
        whatever else is immediately available up to `max_messages`.
        """
        queue_name = self._config.queue_config.name
        deadline = time.monotonic() + wait_time_seconds
        messages: list[QueueMessage] = []

        while len(messages) < max_messages:
            method, properties, body = self._channel.basic_get(
                queue=queue_name, auto_ack=False
            )
            if method is None:
                if messages or time.monotonic() >= deadline:
                    break
                # Sleeping through the connection keeps heartbeats and I/O serviced.
                self._channel.connection.sleep(self._poll_interval_seconds)
                continue

            headers = properties.headers if properties and properties.headers else {}
            message_id = (properties.message_id if properties else None) or str(
                method.delivery_tag
            )
            messages.append(
                QueueMessage(
                    message_id=message_id,
                    receipt_handle=method.delivery_tag,
                    body=body or b"",
                    delivery_count=int(headers.get("x-delivery-count", 0)) + 1,
                )
            )

        if messages:
            logger.info(
                "Messages received",
                extra={"queue": queue_name, "count": len(messages)},
            )
        return messages

    def acknowledge(self, receipt_handle: int) -> None:
        """Acknowledges a message, removing it from the queue."""
        self._channel.basic_ack(delivery_tag=receipt_handle)

    def reject(self, receipt_handle: int) -> None:
        """Rejects a message, triggering redelivery until the delivery limit."""
        self._channel.basic_nack(delivery_tag=receipt_handle, requeue=True)

    def setup(self) -> None:
        """Declares exchanges, queues, and bindings; safe to call repeatedly."""
        queue_config: QueueConfig = self._config.queue_config

        # Dead letter exchange and queue
        self._channel.exchange_declare(
            exchange=queue_config.dlq_exchange_name,
            exchange_type="direct",
            durable=True,
        )
        self._channel.queue_declare(
            queue=queue_config.dlq_name,
            durable=True,
        )
        self._channel.queue_bind(
            queue=queue_config.dlq_name,
            exchange=queue_config.dlq_exchange_name,
            routing_key=queue_config.dlq_routing_key,
        )

        # Task exchange
        self._channel.exchange_declare(
            exchange=self._config.exchange_name,
            exchange_type="topic",
            durable=True,
        )

        # Task queue with dead letter configuration
        arguments = {
            "x-queue-type": queue_config.queue_type,
            "x-delivery-limit": queue_config.max_delivery_count,
            "x-dead-letter-exchange": queue_config.dlq_exchange_name,
            "x-dead-letter-routing-key": queue_config.dlq_routing_key,
            "x-consumer-timeout": queue_config.visibility_timeout_seconds * 1000,
        }
        self._channel.queue_declare(
            queue=queue_config.name,
            durable=True,
            arguments=arguments,
        )
        self._channel.queue_bind(
            queue=queue_config.name,
            exchange=self._config.exchange_name,
            routing_key=queue_config.routing_key,
        )

        logger.info(
            "Queue infrastructure ready",
            extra={"queue": queue_config.name, "dlq": queue_config.dlq_name},
        )
