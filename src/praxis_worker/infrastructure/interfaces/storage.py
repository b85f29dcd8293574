"""Abstract interface for object storage operations."""

from abc import ABC, abstractmethod
from pathlib import Path


class StorageClient(ABC):
    """Abstract base class for object storage backends."""

    @abstractmethod
    def download_file(self, bucket_name: str, object_name: str, file_path: Path) -> None:
        """
        Downloads an object to a local file.

        Args:
            bucket_name: The storage bucket name.
            object_name: The object path/name in storage.
            file_path: Local destination path.

        Raises:
            StorageDownloadError: If the download fails.
        """

    @abstractmethod
    def upload_file(
        self,
        bucket_name: str,
        object_name: str,
        file_path: Path,
        content_type: str,
    ) -> None:
        """
        Uploads a local file.

        Args:
            bucket_name: The storage bucket name.
            object_name: The destination path/name in storage.
            file_path: Local file to upload.
            content_type: MIME type of the file.

        Raises:
            StorageUploadError: If the upload fails.
        """

    @abstractmethod
    def delete(self, bucket_name: str, object_name: str) -> None:
        """
        Deletes a single object.

        Raises:
            StorageDeleteError: If the deletion fails.
        """

    @abstractmethod
    def delete_prefix(self, bucket_name: str, prefix: str) -> int:
        """
        Deletes every object under a prefix.

        Returns:
            Number of deleted objects.

        Raises:
            StorageDeleteError: If any deletion fails.
        """

    @abstractmethod
    def ensure_bucket_exists(self, bucket_name: str) -> None:
        """
        Ensures a bucket exists, creating it if necessary.

        Args:
            bucket_name: The bucket name to ensure exists.
        """
