"""Integration tests for movie catalog endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from db.models import Movie


@pytest.fixture
async def stored_movie(test_session: AsyncSession) -> Movie:
    movie = Movie(
        title="Heat",
        tmdb_id=949,
        overview="A group of professional bank robbers...",
        genre_ids_json="[80, 18]",
        playlist_path="/movies/Heat_hls/playlist.m3u8",
        audio_stream_index=0,
        upload_attempts=1,
    )
    test_session.add(movie)
    await test_session.commit()
    return movie


class TestTitles:
    @pytest.mark.asyncio
    async def test_empty_catalog(self, client: AsyncClient) -> None:
        response = await client.get("/get_all_titles")

        assert response.status_code == 200
        assert response.json() == {"titles": []}

    @pytest.mark.asyncio
    async def test_lists_titles(self, client: AsyncClient, test_session: AsyncSession, stored_movie: Movie) -> None:
        test_session.add(Movie(title="Alien"))
        await test_session.commit()

        response = await client.get("/get_all_titles")

        assert response.json()["titles"] == ["Alien", "Heat"]


class TestMovieDetails:
    @pytest.mark.asyncio
    async def test_details(self, client: AsyncClient, stored_movie: Movie) -> None:
        response = await client.get("/get_movie_details/Heat")

        assert response.status_code == 200
        data = response.json()
        assert data["tmdb_id"] == 949
        assert data["genre_ids"] == [80, 18]
        assert "genre_ids_json" not in data

    @pytest.mark.asyncio
    async def test_unknown_title(self, client: AsyncClient) -> None:
        response = await client.get("/get_movie_details/Nope")

        assert response.status_code == 404


class TestDeleteMovie:
    @pytest.mark.asyncio
    async def test_deletes_row_and_folder(
        self, client: AsyncClient, test_settings: Settings, stored_movie: Movie
    ) -> None:
        hls_dir = test_settings.movies_dir / "Heat_hls"
        hls_dir.mkdir()
        (hls_dir / "playlist.m3u8").write_text("#EXTM3U\n")

        response = await client.request("DELETE", "/delete_movie", json={"title": "Heat"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert not hls_dir.exists()
        assert (await client.get("/get_movie_details/Heat")).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_title(self, client: AsyncClient) -> None:
        response = await client.request("DELETE", "/delete_movie", json={"title": "Nope"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_blank_title(self, client: AsyncClient) -> None:
        response = await client.request("DELETE", "/delete_movie", json={"title": "  "})

        assert response.status_code == 400


class TestQueue:
    @pytest.mark.asyncio
    async def test_add_then_list(self, client: AsyncClient, test_session: AsyncSession, stored_movie: Movie) -> None:
        test_session.add(Movie(title="Alien"))
        await test_session.commit()

        response = await client.post("/update_queue", json={"title": "Heat", "inQueue": True})

        assert response.status_code == 200
        assert response.json() == {"success": True, "title": "Heat", "inQueue": True}
        queue = (await client.get("/get_queue")).json()
        assert [movie["title"] for movie in queue] == ["Heat"]
        assert queue[0]["in_queue"] is True

    @pytest.mark.asyncio
    async def test_remove_from_queue(self, client: AsyncClient, stored_movie: Movie) -> None:
        await client.post("/update_queue", json={"title": "Heat", "inQueue": True})

        response = await client.post("/update_queue", json={"title": "Heat", "inQueue": False})

        assert response.json()["inQueue"] is False
        assert (await client.get("/get_queue")).json() == []

    @pytest.mark.asyncio
    async def test_missing_title(self, client: AsyncClient) -> None:
        response = await client.post("/update_queue", json={"inQueue": True})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_title(self, client: AsyncClient) -> None:
        response = await client.post("/update_queue", json={"title": "Nope", "inQueue": True})

        assert response.status_code == 404


class TestRoulette:
    @pytest.mark.asyncio
    async def test_empty_catalog(self, client: AsyncClient) -> None:
        response = await client.get("/roulette")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_picks_a_catalog_movie(
        self, client: AsyncClient, test_session: AsyncSession, stored_movie: Movie
    ) -> None:
        test_session.add(Movie(title="Alien"))
        await test_session.commit()

        response = await client.get("/roulette")

        assert response.status_code == 200
        assert response.json()["movie"]["title"] in {"Heat", "Alien"}
