"""Upload and on-demand HLS build orchestration."""

import asyncio
import logging
import shutil
import time
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from core.config import Settings, get_settings
from services.encode_planner import EncodePlanner
from services.encoding_models import (
    ConversionJob,
    JobState,
    UploadedSource,
    UploadResult,
)
from services.movie_files import find_movie_by_title, safe_filename, title_from_filename
from services.progress_hub import ProgressHub
from services.retry_coordinator import RetryCoordinator
from services.source_probe import SourceProbe

logger = logging.getLogger(__name__)


class ConversionRecorder(Protocol):
    """Receives the outcome of each conversion (e.g. the movie catalog)."""

    async def record_success(
        self,
        title: str,
        playlist_path: str,
        audio_stream_index: int | None,
        refetch_index: int | None = None,
    ) -> dict[str, Any] | None:
        """Called once a title has a playable HLS folder."""
        ...

    async def record_failure(self, title: str, diagnostic: str) -> None:
        """Called when every encode strategy failed."""
        ...


class UploadOrchestrator:
    """
    Runs conversion jobs for uploaded files, one file at a time.

    Per job: short-circuit re-uploads whose HLS folder already exists, copy
    the source to a temporary file, create the output folder, probe the
    audio track, run the planned strategies, always remove the temporary
    copy and always finish the listener's progress at 100%.
    """

    def __init__(
        self,
        progress_hub: ProgressHub,
        recorder: ConversionRecorder | None = None,
        probe: SourceProbe | None = None,
        planner: EncodePlanner | None = None,
        coordinator: RetryCoordinator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.progress_hub = progress_hub
        self.recorder = recorder
        self.probe = probe or SourceProbe(self.settings.ffprobe_path)
        self.planner = planner or EncodePlanner(self.settings.forced_reencode_extension_list)
        self.coordinator = coordinator or RetryCoordinator(planner=self.planner)

    def _new_job(self, original_filename: str, source_path: Path, base_dir: Path) -> ConversionJob:
        return ConversionJob.create(
            original_filename,
            source_path,
            base_dir,
            hls_dir_suffix=self.settings.hls_dir_suffix,
            playlist_name=self.settings.playlist_name,
        )

    async def process_batch(
        self,
        sources: Sequence[UploadedSource],
        base_dir: Path | None = None,
        refetch_index: int | None = None,
    ) -> list[UploadResult]:
        """
        Convert a batch of uploads sequentially.

        A failure in one file is recorded in its result and never stops the
        rest of the batch.
        """
        logger.info("Received %d files", len(sources))
        results: list[UploadResult] = []

        for source in sources:
            title = title_from_filename(source.original_filename)
            try:
                job = await self.process_upload(source, base_dir=base_dir)
                results.append(await self._report(job, refetch_index))
            except Exception as e:
                logger.exception("Upload failed: %s", title)
                results.append(UploadResult(title=title, success=False, error=str(e)))
                if self.recorder:
                    try:
                        await self.recorder.record_failure(title, str(e))
                    except Exception as record_error:
                        logger.warning("Could not record failure for %s: %s", title, record_error)

        return results

    async def process_upload(
        self,
        source: UploadedSource,
        base_dir: Path | None = None,
    ) -> ConversionJob:
        """
        Run the full lifecycle for one uploaded file.

        Returns:
            The job in a terminal state.

        Raises:
            ValueError: If the upload has no usable filename or content.
            OSError: If the temporary copy or output folder cannot be written.
        """
        base_dir = base_dir or self.settings.movies_dir
        filename = safe_filename(source.original_filename or "")
        if not Path(filename).stem:
            raise ValueError("Upload is missing a filename")

        temp_path = base_dir / f"temp_{int(time.time() * 1000)}_{filename}"
        job = self._new_job(filename, temp_path, base_dir)
        logger.info("Processing: %s", filename)

        if job.output_dir.exists():
            logger.info("Re-upload detected for %r - skipping HLS conversion", job.title)
            job.reupload = True
            job.state = JobState.SUCCEEDED
            self.progress_hub.complete(job.key)
            return job

        logger.info("First upload for %r - performing HLS conversion", job.title)
        try:
            base_dir.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(self._write_temp_source, source, temp_path)
            await self._convert(job)
        finally:
            self._remove_temp_source(temp_path)
            self.progress_hub.complete(job.key)

        return job

    async def build_for_title(self, title: str, base_dir: Path | None = None) -> ConversionJob | None:
        """
        Build (or rebuild) the HLS folder for a source already in the library.

        The source file is converted in place and never deleted. Unlike
        uploads, an existing HLS folder does not short-circuit the build.

        Returns:
            The terminal job, or None if no source file matches the title.
        """
        base_dir = base_dir or self.settings.movies_dir
        base_dir.mkdir(parents=True, exist_ok=True)

        source_path = find_movie_by_title(base_dir, title)
        if source_path is None:
            logger.error("No movie found named %r in %s", title, base_dir)
            return None

        job = self._new_job(source_path.name, source_path, base_dir)
        logger.info("Building HLS from: %s", source_path)
        try:
            await self._convert(job)
        finally:
            self.progress_hub.complete(job.key)
        return job

    async def _convert(self, job: ConversionJob) -> None:
        job.output_dir.mkdir(parents=True, exist_ok=True)

        job.state = JobState.PROBING_AUDIO
        job.audio_stream_index = await self.probe.select_audio_stream(job.source_path)

        strategies = self.planner.plan(job.source_path)
        await self.coordinator.run(
            job,
            strategies,
            progress_callback=self.progress_hub.create_progress_callback(job.key),
        )

        if job.state == JobState.FAILED:
            self._write_job_log(job)
        else:
            logger.info("HLS files written to: %s", job.output_dir)

    async def _report(self, job: ConversionJob, refetch_index: int | None) -> UploadResult:
        """Hand a terminal job to the recorder and build its batch result."""
        result = UploadResult(
            title=job.title,
            success=job.state == JobState.SUCCEEDED,
            playlist_path=str(job.playlist_path),
            audio_stream_index=None if job.reupload else job.audio_stream_index,
            reupload=job.reupload,
            attempts=[strategy.value for strategy in job.strategies_tried],
        )

        if result.success:
            if self.recorder:
                result.info = await self.recorder.record_success(
                    job.title,
                    str(job.playlist_path),
                    result.audio_stream_index,
                    refetch_index,
                )
            logger.info("Success: %s", job.title)
        else:
            result.error = job.failure_reason or "HLS conversion failed"
            result.playlist_path = None
            if self.recorder:
                await self.recorder.record_failure(job.title, result.error)
            logger.error("Failed: %s", job.title)

        return result

    @staticmethod
    def _write_temp_source(source: UploadedSource, temp_path: Path) -> None:
        if source.data is not None:
            with temp_path.open("wb") as out:
                shutil.copyfileobj(source.data, out)
        elif source.path is not None:
            shutil.copyfile(source.path, temp_path)
        else:
            raise ValueError(f"Upload {source.original_filename!r} has no content")

    @staticmethod
    def _remove_temp_source(temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temp file %s: %s", temp_path, e)

    def _write_job_log(self, job: ConversionJob) -> None:
        """Persist every attempt's diagnostic text for a failed job."""
        ts = datetime.utcnow().isoformat(timespec="milliseconds") + "Z"
        lines = [f"{ts} [ERROR] {job.original_filename}: all encode strategies failed"]
        for attempt in job.attempts:
            lines.append(
                f"{ts} [ERROR] {attempt.strategy.value} attempt "
                f"(outcome={attempt.outcome.value}, returncode={attempt.returncode})"
            )
            lines.extend(attempt.diagnostic.splitlines())

        try:
            log_dir = self.settings.job_log_dir
            log_dir.mkdir(parents=True, exist_ok=True)
            with (log_dir / f"{job.title}.log").open("a", encoding="utf-8") as fh:
                fh.write("\n".join(lines) + "\n")
        except OSError as e:
            logger.warning("Could not write job log for %s: %s", job.title, e)
