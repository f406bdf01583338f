"""Services module."""

from .encode_executor import (
    AttemptFailedError,
    EncodeExecutor,
    EncoderError,
    SpawnFailedError,
)
from .encode_planner import EncodePlanner
from .encoding_models import (
    AttemptOutcome,
    AudioStreamDescriptor,
    ConversionJob,
    EncodeAttempt,
    EncodeStrategy,
    JobState,
    UploadedSource,
    UploadResult,
)
from .ffmpeg_progress import FFmpegProgressParser
from .movie_catalog import MovieCatalog
from .progress_hub import ProgressHub, ProgressStream
from .retry_coordinator import RetryCoordinator
from .source_probe import ProbeDegradedError, SourceProbe
from .tmdb_client import TMDBClient, TMDBError
from .upload_orchestrator import UploadOrchestrator

__all__ = [
    # Encoding
    "EncodeExecutor",
    "EncoderError",
    "SpawnFailedError",
    "AttemptFailedError",
    "EncodePlanner",
    "FFmpegProgressParser",
    "RetryCoordinator",
    # Probe
    "SourceProbe",
    "ProbeDegradedError",
    # Models
    "AttemptOutcome",
    "AudioStreamDescriptor",
    "ConversionJob",
    "EncodeAttempt",
    "EncodeStrategy",
    "JobState",
    "UploadedSource",
    "UploadResult",
    # Progress
    "ProgressHub",
    "ProgressStream",
    # Orchestration
    "UploadOrchestrator",
    "MovieCatalog",
    "TMDBClient",
    "TMDBError",
]
