"""Redis implementation of the IdempotencyStore interface."""

import redis

from praxis_worker.exceptions import CacheServiceError
from praxis_worker.infrastructure.interfaces import IdempotencyStore
from praxis_worker.logging import setup_logging

logger = setup_logging()


class RedisIdempotencyStore(IdempotencyStore):
    """Keeps completed task keys in Redis for a fixed window."""

    def __init__(self, client: redis.Redis, ttl_seconds: int, prefix: str = "task:done:"):
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._prefix = prefix

    def is_completed(self, key: str) -> bool:
        """
        Checks whether a task key was completed within the TTL window.

        Raises:
            CacheServiceError: If the Redis operation fails.
        """
        try:
            found = bool(self._client.exists(self._prefix + key))
            if found:
                logger.info("Idempotency key hit", extra={"key": key})
            return found
        except redis.RedisError as e:
            logger.exception("Redis exists failed", extra={"key": key})
            raise CacheServiceError(key, "exists", cause=e) from e

    def mark_completed(self, key: str) -> None:
        """
        Records a task key as completed with the configured TTL.

        Raises:
            CacheServiceError: If the Redis operation fails.
        """
        try:
            self._client.set(self._prefix + key, "1", ex=self._ttl_seconds)
            logger.info("Idempotency key stored", extra={"key": key, "ttl": self._ttl_seconds})
        except redis.RedisError as e:
            logger.exception("Redis set failed", extra={"key": key})
            raise CacheServiceError(key, "set", cause=e) from e
