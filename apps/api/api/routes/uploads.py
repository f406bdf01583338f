"""Movie upload and upload-progress endpoints."""

import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import UploadBatchResponse, UploadResultResponse
from core.config import Settings, get_settings
from db.session import get_session
from services.encoding_models import UploadedSource
from services.movie_catalog import MovieCatalog
from services.progress_hub import ProgressHub, ProgressStream
from services.tmdb_client import TMDBClient
from services.upload_orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_progress_hub(request: Request) -> ProgressHub:
    """Return the application's progress hub (created in create_app)."""
    return request.app.state.progress_hub


def get_upload_orchestrator(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    progress_hub: ProgressHub = Depends(get_progress_hub),
) -> UploadOrchestrator:
    """Build an orchestrator bound to this request's database session."""
    catalog = MovieCatalog(
        session,
        TMDBClient(
            api_key=settings.tmdb_api_key,
            base_url=settings.tmdb_base_url,
            timeout=settings.tmdb_timeout_seconds,
        ),
    )
    return UploadOrchestrator(progress_hub, recorder=catalog, settings=settings)


@router.get("/progress/{filename}")
async def upload_progress(
    filename: str,
    progress_hub: ProgressHub = Depends(get_progress_hub),
) -> StreamingResponse:
    """
    Server-sent events with conversion progress for one original filename.

    Each event is ``{"progress": <0-100>}``; the stream ends when the job
    finishes, after its final 100.
    """
    stream = ProgressStream()
    progress_hub.subscribe(filename, stream, on_complete=stream.close)

    async def event_source() -> AsyncGenerator[str, None]:
        try:
            async for event in stream.events():
                yield event
        finally:
            progress_hub.unsubscribe(filename, stream)

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.post("", response_model=UploadBatchResponse)
async def upload_movies(
    movies: list[UploadFile] | None = File(default=None),
    refetch_index: int | None = Form(default=None, ge=0),
    settings: Settings = Depends(get_settings),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> UploadBatchResponse:
    """Accept movie files and convert each to HLS, one after another."""
    if not movies:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(movies) > settings.max_upload_files:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.max_upload_files} files per upload",
        )

    sources = [
        UploadedSource(original_filename=movie.filename or "", data=movie.file)
        for movie in movies
    ]
    results = await orchestrator.process_batch(sources, refetch_index=refetch_index)

    return UploadBatchResponse(
        results=[UploadResultResponse.model_validate(result) for result in results],
    )
