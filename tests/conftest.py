from contextlib import contextmanager
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from praxis_worker.domain import AccountContext
from praxis_worker.exceptions import StorageDownloadError
from praxis_worker.infrastructure.interfaces import StorageClient


class FakeStorage(StorageClient):
    """In-memory object storage keyed by (bucket, object name)."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.download_failures: dict[str, int] = {}
        self.download_calls: list[str] = []
        self.deleted: list[tuple[str, str]] = []
        self.fail_delete = False

    def put(self, bucket_name: str, object_name: str, data: bytes) -> None:
        self.objects[(bucket_name, object_name)] = data

    def download_file(self, bucket_name, object_name, file_path: Path) -> None:
        self.download_calls.append(object_name)
        remaining = self.download_failures.get(object_name, 0)
        if remaining:
            self.download_failures[object_name] = remaining - 1
            raise StorageDownloadError(object_name, Exception("connection reset"))
        if (bucket_name, object_name) not in self.objects:
            raise StorageDownloadError(object_name, Exception("no such key"))
        Path(file_path).write_bytes(self.objects[(bucket_name, object_name)])

    def upload_file(self, bucket_name, object_name, file_path: Path, content_type) -> None:
        self.objects[(bucket_name, object_name)] = Path(file_path).read_bytes()

    def delete(self, bucket_name, object_name) -> None:
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        self.deleted.append((bucket_name, object_name))
        self.objects.pop((bucket_name, object_name), None)

    def delete_prefix(self, bucket_name, prefix) -> int:
        names = [n for (b, n) in self.objects if b == bucket_name and n.startswith(prefix)]
        for name in names:
            self.delete(bucket_name, name)
        return len(names)

    def ensure_bucket_exists(self, bucket_name) -> None:
        pass


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def account_context():
    return AccountContext(account_id="acc-1", message_id="msg-1", operation="audio:transcribe")


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    @contextmanager
    def factory():
        with Session(engine) as session:
            yield session

    yield factory
    engine.dispose()
