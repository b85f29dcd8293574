"""Thin wrappers around the ffmpeg and ffprobe command line tools."""

import shutil
import subprocess
from pathlib import Path

from praxis_worker.exceptions import FFmpegError
from praxis_worker.logging import setup_logging

logger = setup_logging()


class FFmpegRunner:
    """Runs ffmpeg/ffprobe as subprocesses and raises FFmpegError on failure."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        timeout_seconds: float = 1800,
    ):
        self._ffmpeg = ffmpeg_binary
        self._ffprobe = ffprobe_binary
        self._timeout_seconds = timeout_seconds

    def concat_streams(self, inputs: list[Path], output: Path) -> None:
        """Joins independently decodable files into one audio stream."""
        args: list[str] = []
        for path in inputs:
            args += ["-i", str(path)]
        args += [
            "-filter_complex",
            f"concat=n={len(inputs)}:v=0:a=1[outa]",
            "-map",
            "[outa]",
            str(output),
        ]
        self._run_ffmpeg(args)

    def remux(self, source: Path, output: Path) -> None:
        """Rewrites the container without re-encoding, repairing its index."""
        self._run_ffmpeg(["-i", str(source), "-c", "copy", str(output)])

    def convert_to_mp3(self, source: Path, output: Path) -> None:
        """Re-encodes audio to mono 44.1 kHz MP3 and drops any video stream."""
        self._run_ffmpeg(
            [
                "-i", str(source),
                "-vn",
                "-ar", "44100",
                "-ac", "1",
                "-b:a", "128k",
                str(output),
            ]
        )

    def probe_duration(self, path: Path) -> float | None:
        """
        Reads the container duration in seconds.

        Returns:
            Duration in seconds, or None when ffprobe is missing or cannot
            determine it.
        """
        if shutil.which(self._ffprobe) is None:
            logger.warning("ffprobe not available", extra={"binary": self._ffprobe})
            return None

        cmd = [
            self._ffprobe,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=60, check=True
            )
            return float(result.stdout.strip())
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, ValueError) as e:
            logger.warning(
                "Could not probe audio duration",
                extra={"path": str(path), "error": str(e)},
            )
            return None

    def _run_ffmpeg(self, args: list[str]) -> None:
        cmd = [self._ffmpeg, "-nostdin", "-hide_banner", "-y", *args]
        logger.info("Running ffmpeg", extra={"args": " ".join(args)})
        try:
            subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            logger.error(
                "ffmpeg exited with an error",
                extra={"returncode": e.returncode, "stderr": (e.stderr or "")[-2000:]},
            )
            raise FFmpegError("ffmpeg", e.stderr or "", cause=e) from e
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.exception("ffmpeg could not run")
            raise FFmpegError("ffmpeg", str(e), cause=e) from e
