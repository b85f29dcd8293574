"""MinIO implementation of the StorageClient interface."""

from pathlib import Path

from minio import Minio
from minio.deleteobjects import DeleteObject

from praxis_worker.exceptions import (
    StorageDeleteError,
    StorageDownloadError,
    StorageUploadError,
)
from praxis_worker.infrastructure.interfaces import StorageClient
from praxis_worker.logging import setup_logging

logger = setup_logging()


class MinioStorageClient(StorageClient):
    """Handles object storage operations using any S3-compatible MinIO client."""

    def __init__(self, client: Minio):
        self._client = client

    def download_file(self, bucket_name: str, object_name: str, file_path: Path) -> None:
        try:
            self._client.fget_object(bucket_name, object_name, str(file_path))
            logger.info(
                "File downloaded from storage",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
        except Exception as e:
            logger.exception(
                "Storage download failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise StorageDownloadError(object_name, e) from e

    def upload_file(
        self,
        bucket_name: str,
        object_name: str,
        file_path: Path,
        content_type: str,
    ) -> None:
        try:
            self._client.fput_object(
                bucket_name=bucket_name,
                object_name=object_name,
                file_path=str(file_path),
                content_type=content_type,
            )
            logger.info(
                "File uploaded to storage",
                extra={
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                    "content_type": content_type,
                },
            )
        except Exception as e:
            logger.exception(
                "Storage upload failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise StorageUploadError(object_name, e) from e

    def delete(self, bucket_name: str, object_name: str) -> None:
        try:
            self._client.remove_object(bucket_name, object_name)
            logger.info(
                "Object deleted from storage",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
        except Exception as e:
            logger.exception(
                "Storage delete failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise StorageDeleteError(object_name, e) from e

    def delete_prefix(self, bucket_name: str, prefix: str) -> int:
        try:
            objects = [
                DeleteObject(obj.object_name)
                for obj in self._client.list_objects(
                    bucket_name, prefix=prefix, recursive=True
                )
            ]
            if not objects:
                logger.info(
                    "No objects to delete",
                    extra={"bucket_name": bucket_name, "prefix": prefix},
                )
                return 0

            # remove_objects is lazy; errors only surface while iterating.
            errors = list(self._client.remove_objects(bucket_name, objects))
        except Exception as e:
            logger.exception(
                "Storage prefix delete failed",
                extra={"bucket_name": bucket_name, "prefix": prefix},
            )
            raise StorageDeleteError(prefix, e) from e

        if errors:
            logger.error(
                "Some objects could not be deleted",
                extra={
                    "bucket_name": bucket_name,
                    "prefix": prefix,
                    "failed": [error.name for error in errors],
                },
            )
            raise StorageDeleteError(prefix, Exception(str(errors[0])))

        logger.info(
            "Objects deleted from storage",
            extra={"bucket_name": bucket_name, "prefix": prefix, "count": len(objects)},
        )
        return len(objects)

    def ensure_bucket_exists(self, bucket_name: str) -> None:
        if not self._client.bucket_exists(bucket_name):
            self._client.make_bucket(bucket_name)
            logger.info("Bucket created", extra={"bucket_name": bucket_name})
        else:
            logger.info("Bucket already exists", extra={"bucket_name": bucket_name})
