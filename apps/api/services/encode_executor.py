"""ffmpeg subprocess execution for HLS encode attempts."""

import asyncio
import logging
from datetime import datetime

from core.config import get_settings
from services.encoding_models import (
    AttemptOutcome,
    EncodeAttempt,
    EncodeStrategy,
    ProgressSink,
)
from services.ffmpeg_progress import FFmpegProgressParser, read_lines

logger = logging.getLogger(__name__)


class EncoderError(Exception):
    """Base exception for encoder errors."""

    def __init__(self, message: str, attempt: EncodeAttempt) -> None:
        super().__init__(message)
        self.attempt = attempt


class SpawnFailedError(EncoderError):
    """Raised when the encoder binary could not be launched at all."""

    pass


class AttemptFailedError(EncoderError):
    """Raised when the encoder ran but exited with a nonzero code."""

    @property
    def diagnostic(self) -> str:
        return self.attempt.diagnostic


class EncodeExecutor:
    """Runs one ffmpeg process per attempt and reports its progress."""

    def __init__(self, ffmpeg_path: str | None = None) -> None:
        self.ffmpeg_path = ffmpeg_path or get_settings().ffmpeg_path

    async def run(
        self,
        strategy: EncodeStrategy,
        args: list[str],
        progress_callback: ProgressSink | None = None,
    ) -> EncodeAttempt:
        """
        Execute ffmpeg with the given arguments and wait for it to exit.

        Args:
            strategy: Strategy the arguments were built for (recorded only).
            args: ffmpeg arguments, without the binary.
            progress_callback: Receives a percentage (0-100) each time a new
                ``time=`` marker is parsed after the duration is known.

        Returns:
            The successful attempt record.

        Raises:
            SpawnFailedError: If the process could not be started.
            AttemptFailedError: If the process exited nonzero; carries the full
                stderr text.
        """
        attempt = EncodeAttempt(strategy=strategy)
        cmd = [self.ffmpeg_path, *args]
        logger.info("Starting %s encode: %s", strategy.value, " ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            attempt.outcome = AttemptOutcome.SPAWN_FAILED
            attempt.diagnostic = f"Error spawning {self.ffmpeg_path}: {e}"
            attempt.finished_at = datetime.utcnow()
            logger.error("%s", attempt.diagnostic)
            raise SpawnFailedError(attempt.diagnostic, attempt) from e

        attempt.pid = process.pid
        parser = FFmpegProgressParser()
        diagnostic_lines: list[str] = []

        if process.stderr is not None:
            async for line in read_lines(process.stderr):
                diagnostic_lines.append(line)
                percentage = parser.feed(line)
                if percentage is not None and progress_callback:
                    progress_callback(percentage)

        returncode = await process.wait()

        attempt.returncode = returncode
        attempt.duration_seconds = parser.duration_seconds
        attempt.current_seconds = parser.current_seconds
        attempt.percentage = parser.percentage
        attempt.finished_at = datetime.utcnow()

        if returncode == 0:
            attempt.outcome = AttemptOutcome.SUCCEEDED
            logger.info(
                "%s encode finished (pid %s, %.0fs of media)",
                strategy.value,
                attempt.pid,
                attempt.duration_seconds or 0.0,
            )
            return attempt

        attempt.outcome = AttemptOutcome.FAILED
        attempt.diagnostic = "\n".join(diagnostic_lines)
        tail = "\n".join(diagnostic_lines[-5:])
        logger.error(
            "%s encode failed with code %d: %s",
            strategy.value,
            returncode,
            tail,
        )
        raise AttemptFailedError(
            f"ffmpeg {strategy.value} attempt exited with code {returncode}",
            attempt,
        )
