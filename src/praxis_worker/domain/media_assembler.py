"""Retrieval and assembly of recording chunks into a single audio file."""

import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from praxis_worker.exceptions import (
    AudioAssemblyError,
    ChunkDownloadError,
    FFmpegError,
    StorageDownloadError,
)
from praxis_worker.infrastructure.ffmpeg import FFmpegRunner
from praxis_worker.infrastructure.interfaces import StorageClient
from praxis_worker.logging import setup_logging

from .audio_formats import normalize_extension
from .models import AccountContext, RecordingChunk

logger = setup_logging()


class MediaAssembler:
    """
    Downloads the chunks of a recording and joins them into one playable file.

    Standalone chunks are complete containers and are joined with ffmpeg's
    concat filter. Other chunks are fragments of one stream, so their bytes
    are concatenated first and the result is remuxed once to repair the
    container.
    """

    def __init__(
        self,
        storage: StorageClient,
        ffmpeg: FFmpegRunner,
        batch_size: int = 5,
        download_retries: int = 1,
        retry_backoff_seconds: float = 1.0,
    ):
        self._storage = storage
        self._ffmpeg = ffmpeg
        self._batch_size = batch_size
        self._download_retries = download_retries
        self._retry_backoff_seconds = retry_backoff_seconds

    def assemble(
        self,
        chunks: list[RecordingChunk],
        standalone_chunks: bool,
        output_dir: Path,
        context: AccountContext,
    ) -> Path:
        """
        Builds a single audio file from recording chunks.

        Args:
            chunks: Chunks of one recording, in any order.
            standalone_chunks: Whether every chunk is independently decodable.
            output_dir: Directory that receives the assembled file.
            context: Account scope of the task.

        Returns:
            Path of the assembled file inside `output_dir`.

        Raises:
            ChunkDownloadError: If a chunk cannot be downloaded.
            AudioAssemblyError: If chunk numbers repeat, or joining fails or
                produces no file.
        """
        if not chunks:
            raise AudioAssemblyError("no chunks to assemble")

        ordered = sorted(chunks, key=lambda c: c.chunk_number)
        numbers = [chunk.chunk_number for chunk in ordered]
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        if duplicates:
            raise AudioAssemblyError(
                f"duplicate chunk numbers {', '.join(map(str, duplicates))}"
            )
        extension = normalize_extension(ordered[0].storage_path)
        output_path = output_dir / f"combined{extension}"
        scratch_dir = Path(tempfile.mkdtemp(prefix="audio-assembly-"))

        logger.info(
            "Assembling recording",
            extra={
                "account_id": context.account_id,
                "chunk_count": len(ordered),
                "standalone_chunks": standalone_chunks,
                "extension": extension,
            },
        )

        try:
            local_files = self._download_all(ordered, scratch_dir, context)

            if len(local_files) == 1:
                shutil.move(str(local_files[0]), str(output_path))
            elif standalone_chunks:
                self._ffmpeg.concat_streams(local_files, output_path)
            else:
                joined = scratch_dir / f"concatenated{extension}"
                self._concatenate_bytes(local_files, joined)
                self._ffmpeg.remux(joined, output_path)

            if not output_path.exists():
                raise AudioAssemblyError(f"output file '{output_path}' was not created")

            logger.info(
                "Recording assembled",
                extra={
                    "account_id": context.account_id,
                    "output": str(output_path),
                    "size_bytes": output_path.stat().st_size,
                },
            )
            return output_path
        except FFmpegError as e:
            raise AudioAssemblyError("ffmpeg could not join the chunks", cause=e) from e
        finally:
            self._remove_scratch(scratch_dir)

    def _download_all(
        self, chunks: list[RecordingChunk], scratch_dir: Path, context: AccountContext
    ) -> list[Path]:
        """Downloads chunks in fixed-size batches, preserving their order."""
        paths: list[Path] = []
        with ThreadPoolExecutor(max_workers=self._batch_size) as executor:
            for start in range(0, len(chunks), self._batch_size):
                batch = chunks[start : start + self._batch_size]
                paths.extend(
                    executor.map(
                        lambda chunk: self._download_chunk(chunk, scratch_dir, context),
                        batch,
                    )
                )
        return paths

    def _download_chunk(
        self, chunk: RecordingChunk, scratch_dir: Path, context: AccountContext
    ) -> Path:
        extension = normalize_extension(chunk.storage_path)
        local_path = scratch_dir / f"chunk_{chunk.chunk_number:05d}{extension}"

        retrying = Retrying(
            stop=stop_after_attempt(self._download_retries + 1),
            wait=wait_fixed(self._retry_backoff_seconds),
            retry=retry_if_exception_type(StorageDownloadError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "Retrying chunk download",
                            extra={
                                "account_id": context.account_id,
                                "chunk_number": chunk.chunk_number,
                                "attempt": attempt.retry_state.attempt_number,
                            },
                        )
                    self._storage.download_file(
                        chunk.storage_bucket, chunk.storage_path, local_path
                    )
        except StorageDownloadError as e:
            raise ChunkDownloadError(chunk.chunk_number, cause=e) from e

        return local_path

    def _concatenate_bytes(self, sources: list[Path], destination: Path) -> None:
        with destination.open("wb") as out:
            for source in sources:
                with source.open("rb") as chunk_file:
                    shutil.copyfileobj(chunk_file, out)

    def _remove_scratch(self, scratch_dir: Path) -> None:
        try:
            shutil.rmtree(scratch_dir)
        except OSError:
            logger.warning(
                "Failed to remove scratch directory",
                extra={"path": str(scratch_dir)},
                exc_info=True,
            )
