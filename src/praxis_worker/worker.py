"""Worker that polls the task queue and orchestrates processing."""

import json
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from praxis_worker.config import ConsumerConfig, RabbitMQConfig
from praxis_worker.domain import QueueMessage, TaskOutcome
from praxis_worker.exceptions import InvalidTaskError
from praxis_worker.handlers import TaskRouter
from praxis_worker.infrastructure.interfaces import MessageBroker
from praxis_worker.logging import setup_logging

logger = setup_logging()


class Disposition(str, Enum):
    """What happens to a message once its handler returned."""

    DELETE = "delete"
    RETRY = "retry"


class Worker:
    """
    Long-polls the queue and processes each batch concurrently.

    Handlers run on a thread pool, one thread per message. Acknowledgements,
    rejections and follow-up publishes stay on the polling thread because
    the broker channel is not thread-safe.
    """

    def __init__(
        self,
        broker: MessageBroker,
        router: TaskRouter,
        rabbitmq_config: RabbitMQConfig,
        consumer_config: ConsumerConfig,
    ):
        self._broker = broker
        self._router = router
        self._rabbitmq_config = rabbitmq_config
        self._consumer_config = consumer_config
        self._executor = ThreadPoolExecutor(
            max_workers=consumer_config.max_messages,
            thread_name_prefix="task",
        )
        self._is_polling = False

    @property
    def is_polling(self) -> bool:
        return self._is_polling

    def start(self) -> None:
        """Ensures the queue exists, then polls until stop() is called."""
        self._broker.setup()
        self._is_polling = True
        logger.info(
            "Worker initialized, starting to poll",
            extra={"queue": self._rabbitmq_config.queue_config.name},
        )
        try:
            while self._is_polling:
                self.poll_once()
        finally:
            self._executor.shutdown(wait=True)
            logger.info("Worker stopped")

    def stop(self) -> None:
        """Stops polling after the batch in progress has finished."""
        if self._is_polling:
            logger.info("Stop requested, finishing current batch")
        self._is_polling = False

    def poll_once(self) -> int:
        """
        Receives one batch and settles every message in it.

        Returns:
            Number of messages received.
        """
        try:
            messages = self._broker.receive(
                self._consumer_config.max_messages,
                self._consumer_config.wait_time_seconds,
            )
        except Exception:
            logger.exception("Failed to receive messages")
            time.sleep(self._consumer_config.error_backoff_seconds)
            return 0

        if not messages:
            return 0

        futures = [
            (message, self._executor.submit(self._process, message))
            for message in messages
        ]
        for message, future in futures:
            disposition, outcome = future.result()
            self._settle(message, disposition, outcome)
        return len(messages)

    def _process(self, message: QueueMessage) -> tuple[Disposition, TaskOutcome | None]:
        """Runs on a pool thread; never raises."""
        logger.info(
            "Message received",
            extra={
                "message_id": message.message_id,
                "attempt": message.delivery_count,
                "max_attempts": self._rabbitmq_config.queue_config.max_delivery_count,
            },
        )

        try:
            payload = json.loads(message.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.error(
                "Discarding message with malformed body",
                extra={
                    "message_id": message.message_id,
                    "body": message.body[:200].decode("utf-8", "replace"),
                },
            )
            return Disposition.DELETE, None
        if not isinstance(payload, dict):
            logger.error(
                "Discarding message whose body is not a JSON object",
                extra={"message_id": message.message_id},
            )
            return Disposition.DELETE, None

        try:
            outcome = self._router.route(payload, message.message_id)
        except InvalidTaskError as e:
            logger.error(
                "Invalid task, leaving for dead-lettering",
                extra={
                    "message_id": message.message_id,
                    "reason": e.reason,
                    "attempt": message.delivery_count,
                },
            )
            return Disposition.RETRY, None
        except Exception:
            logger.exception(
                "Message processing failed",
                extra={
                    "message_id": message.message_id,
                    "operation": payload.get("operation"),
                    "attempt": message.delivery_count,
                },
            )
            return Disposition.RETRY, None

        return Disposition.DELETE, outcome

    def _settle(
        self,
        message: QueueMessage,
        disposition: Disposition,
        outcome: TaskOutcome | None,
    ) -> None:
        try:
            if disposition is Disposition.RETRY:
                self._broker.reject(message.receipt_handle)
                return
            self._broker.acknowledge(message.receipt_handle)
        except Exception:
            logger.exception(
                "Failed to settle message",
                extra={"message_id": message.message_id, "disposition": disposition.value},
            )
            return

        logger.info("Message processed", extra={"message_id": message.message_id})
        if outcome is None:
            return

        for task in outcome.follow_up_tasks:
            try:
                self._broker.publish(
                    routing_key=self._rabbitmq_config.queue_config.routing_key,
                    payload=task.model_dump(mode="json", by_alias=True, exclude_none=True),
                )
            except Exception:
                logger.exception(
                    "Failed to publish follow-up task",
                    extra={"message_id": message.message_id, "operation": task.operation},
                )
