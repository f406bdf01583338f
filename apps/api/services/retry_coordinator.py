"""Sequencing of encode strategies with a single fallback."""

import logging
from collections.abc import Sequence

from services.encode_executor import AttemptFailedError, EncodeExecutor, SpawnFailedError
from services.encode_planner import EncodePlanner
from services.encoding_models import (
    ConversionJob,
    EncodeStrategy,
    JobState,
    ProgressSink,
)

logger = logging.getLogger(__name__)


class RetryCoordinator:
    """
    Drives a job through its planned strategies in order.

    The first strategy runs; if it fails and a second one is planned, that
    runs too. Nothing runs after a success and there is never more than one
    fallback. A strategy whose process could not be spawned is not retried,
    but the fallback still runs.
    """

    MAX_ATTEMPTS = 2

    def __init__(
        self,
        executor: EncodeExecutor | None = None,
        planner: EncodePlanner | None = None,
    ) -> None:
        self.executor = executor or EncodeExecutor()
        self.planner = planner or EncodePlanner()

    async def run(
        self,
        job: ConversionJob,
        strategies: Sequence[EncodeStrategy],
        progress_callback: ProgressSink | None = None,
    ) -> ConversionJob:
        """
        Attempt the strategies and record each attempt on the job.

        Returns:
            The job, in SUCCEEDED or FAILED state. On failure
            ``job.failure_reason`` holds the last attempt's diagnostic text.
        """
        if not strategies:
            raise ValueError("At least one encode strategy is required")

        job.state = JobState.ATTEMPTING
        planned = list(strategies)[: self.MAX_ATTEMPTS]

        for position, strategy in enumerate(planned):
            args = self.planner.build_args(
                strategy,
                source_path=job.source_path,
                playlist_path=job.playlist_path,
                segment_pattern=job.segment_pattern,
                audio_stream_index=job.audio_stream_index,
            )
            try:
                attempt = await self.executor.run(strategy, args, progress_callback)
            except (SpawnFailedError, AttemptFailedError) as e:
                job.attempts.append(e.attempt)
                job.failure_reason = e.attempt.diagnostic or str(e)
                if position + 1 < len(planned):
                    logger.warning(
                        "%s attempt failed for %s, falling back to %s",
                        strategy.value,
                        job.original_filename,
                        planned[position + 1].value,
                    )
                continue

            job.attempts.append(attempt)
            job.failure_reason = None
            job.state = JobState.SUCCEEDED
            return job

        job.state = JobState.FAILED
        logger.error(
            "All encode strategies failed for %s (%s)",
            job.original_filename,
            ", ".join(s.value for s in job.strategies_tried),
        )
        return job
