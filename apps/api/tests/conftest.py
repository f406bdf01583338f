"""Pytest fixtures for API tests."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from core.config import Settings, get_settings
from db.session import get_session
from main import app
from services.encode_executor import AttemptFailedError, SpawnFailedError
from services.encoding_models import AttemptOutcome, EncodeAttempt, EncodeStrategy


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with overrides."""
    movies_dir = tmp_path / "movies"
    movies_dir.mkdir()
    return Settings(
        database_url=TEST_DATABASE_URL,
        debug=True,
        environment="development",
        movies_dir=movies_dir,
        tmdb_api_key=None,
    )


@pytest.fixture
async def test_engine() -> AsyncGenerator[Any, None]:
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_session(test_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session_maker = sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def client(
    test_session: AsyncSession,
    test_settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with dependency overrides."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield test_session

    def override_get_settings() -> Settings:
        return test_settings

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_settings] = override_get_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class FakeEncodeExecutor:
    """
    Scripted stand-in for EncodeExecutor.

    ``returncodes`` lists the exit code of each successive run; a value of
    None simulates a spawn failure. On success it writes a manifest and one
    segment to the paths found in the arguments, like ffmpeg would.
    """

    def __init__(
        self,
        returncodes: list[int | None],
        diagnostics: list[str] | None = None,
        progress: list[float] | None = None,
    ) -> None:
        self.returncodes = list(returncodes)
        self.diagnostics = list(diagnostics or [])
        self.progress = list(progress or [])
        self.calls: list[tuple[EncodeStrategy, list[str]]] = []

    async def run(self, strategy, args, progress_callback=None):
        self.calls.append((strategy, list(args)))
        await asyncio.sleep(0)
        returncode = self.returncodes.pop(0)
        diagnostic = self.diagnostics.pop(0) if self.diagnostics else "Invalid data found when processing input"
        attempt = EncodeAttempt(strategy=strategy, pid=4242, returncode=returncode)

        if returncode is None:
            attempt.outcome = AttemptOutcome.SPAWN_FAILED
            attempt.diagnostic = "Error spawning ffmpeg: [Errno 2] No such file or directory"
            raise SpawnFailedError(attempt.diagnostic, attempt)

        for value in self.progress:
            if progress_callback:
                progress_callback(value)

        if returncode != 0:
            attempt.outcome = AttemptOutcome.FAILED
            attempt.diagnostic = diagnostic
            raise AttemptFailedError(f"ffmpeg {strategy.value} attempt exited with code {returncode}", attempt)

        playlist = Path(args[-1])
        segment_pattern = args[args.index("-hls_segment_filename") + 1]
        playlist.write_text("#EXTM3U\n#EXT-X-PLAYLIST-TYPE:VOD\nplaylist0.ts\n#EXT-X-ENDLIST\n")
        Path(segment_pattern.replace("%d", "0")).write_bytes(b"\x47" * 188)
        attempt.outcome = AttemptOutcome.SUCCEEDED
        return attempt


@pytest.fixture
def make_executor():
    """Factory for scripted encode executors."""
    return FakeEncodeExecutor


@pytest.fixture
def mock_probe() -> MagicMock:
    """Create mock source probe that always picks audio stream 0."""
    mock = MagicMock()
    mock.select_audio_stream = AsyncMock(return_value=0)
    return mock


@pytest.fixture
def mock_recorder() -> MagicMock:
    """Create mock conversion recorder."""
    mock = MagicMock()
    mock.record_success = AsyncMock(return_value=None)
    mock.record_failure = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def sample_tmdb_result() -> dict[str, Any]:
    """Sample TMDB search result for testing."""
    return {
        "id": 603,
        "title": "The Matrix",
        "original_title": "The Matrix",
        "original_language": "en",
        "overview": "A hacker learns the truth about reality.",
        "poster_path": "/matrix.jpg",
        "release_date": "1999-03-31",
        "vote_average": 8.2,
        "vote_count": 24000,
        "popularity": 80.5,
        "genre_ids": [28, 878],
    }
