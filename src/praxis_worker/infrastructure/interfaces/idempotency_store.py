"""Abstract interface for task idempotency bookkeeping."""

from abc import ABC, abstractmethod


class IdempotencyStore(ABC):
    """Remembers which idempotency keys completed recently."""

    @abstractmethod
    def is_completed(self, key: str) -> bool:
        """
        Checks whether a task with this key completed within the window.

        Raises:
            CacheServiceError: If the backing store fails.
        """

    @abstractmethod
    def mark_completed(self, key: str) -> None:
        """
        Records a completed task key.

        Raises:
            CacheServiceError: If the backing store fails.
        """
