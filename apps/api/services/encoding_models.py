"""Data types shared by the HLS conversion pipeline."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import BinaryIO

# A progress sink receives a percentage in [0, 100].
ProgressSink = Callable[[float], None]


class EncodeStrategy(str, Enum):
    """How an encode attempt treats the source streams."""

    COPY = "copy"
    REENCODE = "reencode"
    FORCED_REENCODE = "forced-reencode"


class AttemptOutcome(str, Enum):
    """Terminal outcome of one encoder run."""

    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    SPAWN_FAILED = "SPAWN_FAILED"


class JobState(str, Enum):
    """Lifecycle of a conversion job."""

    CREATED = "CREATED"
    PROBING_AUDIO = "PROBING_AUDIO"
    ATTEMPTING = "ATTEMPTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class AudioStreamDescriptor:
    """One audio stream as reported by ffprobe.

    ``index`` counts audio streams only, so it can be used directly in an
    ``0:a:<index>`` stream specifier.
    """

    index: int
    language: str | None = None
    title: str | None = None
    handler_name: str | None = None


@dataclass
class EncodeAttempt:
    """A single encoder run for one strategy."""

    strategy: EncodeStrategy
    pid: int | None = None
    duration_seconds: float | None = None
    current_seconds: float | None = None
    percentage: float = 0.0
    outcome: AttemptOutcome = AttemptOutcome.PENDING
    returncode: int | None = None
    diagnostic: str = ""
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCEEDED


@dataclass
class ConversionJob:
    """Conversion of one source file into an HLS folder.

    Identity is the original filename; it is also the key progress listeners
    subscribe with.
    """

    original_filename: str
    source_path: Path
    output_dir: Path
    playlist_path: Path
    segment_pattern: Path
    audio_stream_index: int = 0
    state: JobState = JobState.CREATED
    attempts: list[EncodeAttempt] = field(default_factory=list)
    failure_reason: str | None = None
    reupload: bool = False

    @classmethod
    def create(
        cls,
        original_filename: str,
        source_path: Path,
        base_dir: Path,
        hls_dir_suffix: str = "_hls",
        playlist_name: str = "playlist.m3u8",
    ) -> "ConversionJob":
        """Build a job whose output lands in ``<base_dir>/<stem><suffix>/``."""
        title = Path(original_filename).stem
        output_dir = base_dir / f"{title}{hls_dir_suffix}"
        playlist_path = output_dir / playlist_name
        segment_pattern = output_dir / f"{Path(playlist_name).stem}%d.ts"
        return cls(
            original_filename=original_filename,
            source_path=source_path,
            output_dir=output_dir,
            playlist_path=playlist_path,
            segment_pattern=segment_pattern,
        )

    @property
    def key(self) -> str:
        return self.original_filename

    @property
    def title(self) -> str:
        return Path(self.original_filename).stem

    @property
    def strategies_tried(self) -> list[EncodeStrategy]:
        return [attempt.strategy for attempt in self.attempts]


@dataclass
class UploadedSource:
    """A file handed to the upload orchestrator.

    Exactly one of ``data`` (a readable binary stream) or ``path`` is set.
    """

    original_filename: str
    data: BinaryIO | None = None
    path: Path | None = None


@dataclass
class UploadResult:
    """Per-file outcome of a batch upload."""

    title: str
    success: bool
    error: str | None = None
    playlist_path: str | None = None
    audio_stream_index: int | None = None
    reupload: bool = False
    attempts: list[str] = field(default_factory=list)
    info: dict | None = None
