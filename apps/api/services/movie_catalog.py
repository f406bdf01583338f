"""Records conversion outcomes in the movie catalog."""

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Movie
from services.tmdb_client import TMDBClient, TMDBError

logger = logging.getLogger(__name__)


class MovieCatalog:
    """
    Persists movies after upload and conversion.

    On success the title is looked up on TMDB (best effort) and upserted;
    ``upload_attempts`` counts uploads so a re-upload can pick the next
    search result.
    """

    def __init__(self, session: AsyncSession, tmdb_client: TMDBClient | None = None) -> None:
        self.session = session
        self.tmdb_client = tmdb_client or TMDBClient()

    async def get_movie(self, title: str) -> Movie | None:
        result = await self.session.execute(select(Movie).where(Movie.title == title))
        return result.scalar_one_or_none()

    async def get_upload_count(self, title: str) -> int:
        movie = await self.get_movie(title)
        return movie.upload_attempts if movie else 0

    async def record_success(
        self,
        title: str,
        playlist_path: str,
        audio_stream_index: int | None,
        refetch_index: int | None = None,
    ) -> dict[str, Any] | None:
        """
        Upsert a converted title and bump its upload counter.

        Args:
            title: Movie title.
            playlist_path: HLS manifest path.
            audio_stream_index: Audio stream used for the encode, if known.
            refetch_index: TMDB result index to use; defaults to the number of
                previous uploads of this title.

        Returns:
            The TMDB result applied to the row, or None when lookup was
            skipped or failed.
        """
        try:
            return await self._save_success(title, playlist_path, audio_stream_index, refetch_index)
        except SQLAlchemyError:
            # Leave the shared session usable for the rest of the batch.
            await self.session.rollback()
            raise

    async def _save_success(
        self,
        title: str,
        playlist_path: str,
        audio_stream_index: int | None,
        refetch_index: int | None,
    ) -> dict[str, Any] | None:
        movie = await self.get_movie(title)
        result_index = refetch_index if refetch_index is not None else (movie.upload_attempts if movie else 0)
        logger.info("Using TMDB result index %d for %s", result_index, title)

        info: dict[str, Any] | None = None
        try:
            info = await self.tmdb_client.search_movie(title, result_index)
        except TMDBError as e:
            logger.warning("Could not get movie info for %s: %s", title, e)

        if movie is None:
            movie = Movie(title=title)

        if info:
            self._apply_info(movie, info)
        movie.playlist_path = playlist_path
        if audio_stream_index is not None:
            movie.audio_stream_index = audio_stream_index
        movie.upload_attempts += 1
        movie.last_error = None
        movie.updated_at = datetime.utcnow()

        self.session.add(movie)
        await self.session.commit()
        logger.info("Movie saved to catalog: %s (uploads=%d)", title, movie.upload_attempts)
        return info

    async def record_failure(self, title: str, diagnostic: str) -> None:
        """Log a failed conversion and keep its reason on an existing row."""
        logger.error("Conversion failed for %s: %s", title, diagnostic[-2000:])
        try:
            movie = await self.get_movie(title)
            if movie is None:
                return
            movie.last_error = diagnostic[-4000:]
            movie.updated_at = datetime.utcnow()
            self.session.add(movie)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    @staticmethod
    def _apply_info(movie: Movie, info: dict[str, Any]) -> None:
        movie.tmdb_id = info.get("id") or movie.tmdb_id
        movie.original_title = info.get("original_title") or movie.title
        movie.original_language = info.get("original_language") or "en"
        movie.overview = info.get("overview") or ""
        movie.poster_path = info.get("poster_path") or ""
        movie.release_date = info.get("release_date") or ""
        movie.vote_average = float(info.get("vote_average") or 0)
        movie.vote_count = int(info.get("vote_count") or 0)
        movie.popularity = float(info.get("popularity") or 0)
        movie.genre_ids_json = json.dumps(info.get("genre_ids") or [])
