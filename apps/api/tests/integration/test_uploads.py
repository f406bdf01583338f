"""Integration tests for upload endpoints."""

import asyncio
import json

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.uploads import get_upload_orchestrator
from core.config import Settings
from main import app
from services.encode_planner import EncodePlanner
from services.movie_catalog import MovieCatalog
from services.retry_coordinator import RetryCoordinator
from services.tmdb_client import TMDBClient
from services.upload_orchestrator import UploadOrchestrator


@pytest.fixture
def use_fake_encoder(test_session: AsyncSession, test_settings: Settings, mock_probe, make_executor):
    """Route uploads through a scripted encoder and the real catalog."""

    def _install(returncodes: list[int | None]):
        executor = make_executor(returncodes)
        planner = EncodePlanner(test_settings.forced_reencode_extension_list)

        def override() -> UploadOrchestrator:
            return UploadOrchestrator(
                app.state.progress_hub,
                recorder=MovieCatalog(test_session, TMDBClient(api_key="")),
                probe=mock_probe,
                planner=planner,
                coordinator=RetryCoordinator(executor=executor, planner=planner),
                settings=test_settings,
            )

        app.dependency_overrides[get_upload_orchestrator] = override
        return executor

    return _install


class TestUploadMovies:
    @pytest.mark.asyncio
    async def test_no_files_is_bad_request(self, client: AsyncClient) -> None:
        response = await client.post("/upload_movie")

        assert response.status_code == 400
        assert response.json()["detail"] == "No files uploaded"

    @pytest.mark.asyncio
    async def test_too_many_files(self, client: AsyncClient, test_settings: Settings) -> None:
        test_settings.max_upload_files = 1
        files = [
            ("movies", ("a.mp4", b"a", "video/mp4")),
            ("movies", ("b.mp4", b"b", "video/mp4")),
        ]

        response = await client.post("/upload_movie", files=files)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_upload_converts_and_catalogs(
        self, client: AsyncClient, test_settings: Settings, use_fake_encoder
    ) -> None:
        executor = use_fake_encoder([0])

        response = await client.post(
            "/upload_movie",
            files=[("movies", ("Heat.mkv", b"\x1a\x45\xdf\xa3", "video/x-matroska"))],
        )

        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["title"] == "Heat"
        assert result["success"] is True
        assert result["attempts"] == ["forced-reencode"]
        assert len(executor.calls) == 1
        assert (test_settings.movies_dir / "Heat_hls" / "playlist.m3u8").exists()

        titles = await client.get("/get_all_titles")
        assert titles.json()["titles"] == ["Heat"]

    @pytest.mark.asyncio
    async def test_batch_reports_each_file(
        self, client: AsyncClient, test_settings: Settings, use_fake_encoder
    ) -> None:
        use_fake_encoder([1, 1, 0])

        response = await client.post(
            "/upload_movie",
            files=[
                ("movies", ("broken.mp4", b"\x00", "video/mp4")),
                ("movies", ("fine.mp4", b"\x00", "video/mp4")),
            ],
        )

        results = response.json()["results"]
        assert [r["success"] for r in results] == [False, True]
        assert results[0]["error"]
        assert not [p for p in test_settings.movies_dir.iterdir() if p.name.startswith("temp_")]

    @pytest.mark.asyncio
    async def test_reupload_skips_conversion(
        self, client: AsyncClient, test_settings: Settings, use_fake_encoder
    ) -> None:
        (test_settings.movies_dir / "Heat_hls").mkdir()
        executor = use_fake_encoder([])

        response = await client.post(
            "/upload_movie",
            files=[("movies", ("Heat.mp4", b"\x00", "video/mp4"))],
        )

        result = response.json()["results"][0]
        assert result["success"] is True
        assert result["reupload"] is True
        assert executor.calls == []


class TestUploadProgress:
    @pytest.mark.asyncio
    async def test_stream_ends_on_job_completion(self, client: AsyncClient) -> None:
        hub = app.state.progress_hub
        request = asyncio.create_task(client.get("/upload_movie/progress/Heat.mp4"))

        for _ in range(100):
            if hub.is_subscribed("Heat.mp4"):
                break
            await asyncio.sleep(0.01)
        hub.publish("Heat.mp4", 42.5)
        hub.publish("Heat.mp4", 100)
        hub.publish("Heat.mp4", 3.0)
        hub.complete("Heat.mp4")

        response = await asyncio.wait_for(request, timeout=5)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        frames = [line[len("data: "):] for line in response.text.split("\n\n") if line]
        assert [json.loads(f)["progress"] for f in frames] == [42.5, 100, 3.0, 100]
        assert not hub.is_subscribed("Heat.mp4")
