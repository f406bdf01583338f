"""On-demand HLS build and playback lookup endpoints."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from api.routes.uploads import get_upload_orchestrator
from api.schemas import PlayResponse
from core.config import Settings, get_settings
from services.encoding_models import JobState
from services.upload_orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def playlist_url(settings: Settings, title: str) -> str:
    """Public URL of a title's HLS manifest."""
    folder = quote(f"{title}{settings.hls_dir_suffix}")
    prefix = settings.hls_url_prefix.rstrip("/")
    return f"{settings.public_base_url}{prefix}/{folder}/{settings.playlist_name}"


@router.get("/build_hls/{title}")
async def build_hls(
    title: str,
    settings: Settings = Depends(get_settings),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> RedirectResponse:
    """Build HLS for a source file already in the movies directory, then redirect to it."""
    logger.info("Building HLS files for %s", title)
    job = await orchestrator.build_for_title(title)

    if job is None:
        raise HTTPException(status_code=404, detail="Source movie not found")
    if job.state != JobState.SUCCEEDED:
        raise HTTPException(status_code=500, detail=f"HLS build failed for {job.title}")

    target = playlist_url(settings, job.title)
    logger.info("Redirecting to: %s", target)
    return RedirectResponse(url=target, status_code=302)


@router.get("/play/{title}", response_model=PlayResponse)
async def play(
    title: str,
    settings: Settings = Depends(get_settings),
) -> PlayResponse:
    """Return the manifest URL a player should load for a title."""
    return PlayResponse(title=title, playlist_path=playlist_url(settings, title))
