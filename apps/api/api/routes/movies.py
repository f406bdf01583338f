"""Movie catalog endpoints."""

import asyncio
import logging
import shutil
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import (
    DeleteMovieRequest,
    DeleteMovieResponse,
    QueueUpdateRequest,
    QueueUpdateResponse,
    RouletteResponse,
    TitlesResponse,
)
from core.config import Settings, get_settings
from db.models import Movie, MovieRead
from db.session import get_session
from services.movie_files import hls_dir_for, safe_filename

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/get_all_titles", response_model=TitlesResponse)
async def get_all_titles(
    session: AsyncSession = Depends(get_session),
) -> TitlesResponse:
    """List every title in the catalog."""
    result = await session.execute(select(Movie.title).order_by(Movie.title))
    titles = list(result.scalars().all())
    logger.info("Returning %d movie titles", len(titles))
    return TitlesResponse(titles=titles)


@router.get("/get_movie_details/{title}", response_model=MovieRead)
async def get_movie_details(
    title: str,
    session: AsyncSession = Depends(get_session),
) -> MovieRead:
    """Get one movie by exact title."""
    result = await session.execute(select(Movie).where(Movie.title == title))
    movie = result.scalar_one_or_none()
    if not movie:
        raise HTTPException(status_code=404, detail=f"Movie {title!r} not found")
    return MovieRead.model_validate(movie)


@router.delete("/delete_movie", response_model=DeleteMovieResponse)
async def delete_movie(
    request: DeleteMovieRequest,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> DeleteMovieResponse:
    """Delete a movie's HLS folder and catalog row."""
    title = request.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")

    result = await session.execute(select(Movie).where(Movie.title == title))
    movie = result.scalar_one_or_none()
    if not movie:
        raise HTTPException(status_code=404, detail="Movie not found in database")

    hls_dir = hls_dir_for(settings.movies_dir, safe_filename(title), settings.hls_dir_suffix)
    if hls_dir.is_dir():
        try:
            await asyncio.to_thread(shutil.rmtree, hls_dir)
            logger.info("Deleted HLS directory: %s", hls_dir)
        except OSError as e:
            logger.error("Error deleting HLS directory %s: %s", hls_dir, e)

    await session.delete(movie)
    await session.commit()
    logger.info("Deleted from database: %s", title)

    return DeleteMovieResponse(success=True, message=f'Movie "{title}" deleted successfully')


@router.get("/get_queue", response_model=list[MovieRead])
async def get_queue(
    session: AsyncSession = Depends(get_session),
) -> list[MovieRead]:
    """List movies on the watch queue."""
    result = await session.execute(
        select(Movie).where(Movie.in_queue.is_(True)).order_by(Movie.title)
    )
    return [MovieRead.model_validate(movie) for movie in result.scalars().all()]


@router.post("/update_queue", response_model=QueueUpdateResponse)
async def update_queue(
    request: QueueUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> QueueUpdateResponse:
    """Add a movie to the watch queue or take it off."""
    title = (request.title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")

    result = await session.execute(select(Movie).where(Movie.title == title))
    movie = result.scalar_one_or_none()
    if not movie:
        raise HTTPException(status_code=404, detail=f"Movie {title!r} not found")

    movie.in_queue = request.in_queue
    movie.updated_at = datetime.utcnow()
    session.add(movie)
    await session.commit()
    logger.info("Queue updated: %s (in_queue=%s)", title, request.in_queue)

    return QueueUpdateResponse(success=True, title=title, in_queue=request.in_queue)


@router.get("/roulette", response_model=RouletteResponse)
async def roulette(
    session: AsyncSession = Depends(get_session),
) -> RouletteResponse:
    """Pick a random movie from the catalog."""
    result = await session.execute(select(Movie).order_by(func.random()).limit(1))
    movie = result.scalar_one_or_none()
    if not movie:
        raise HTTPException(status_code=404, detail="No movies found")
    return RouletteResponse(movie=MovieRead.model_validate(movie))
