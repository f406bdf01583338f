"""Health check endpoints."""

import shutil
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_session

router = APIRouter()


class HealthStatus(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy", "degraded"]
    database: Literal["connected", "disconnected"]
    filesystem: Literal["accessible", "inaccessible"]
    encoder: Literal["available", "missing"]
    version: str
    environment: str


class LivenessResponse(BaseModel):
    """Kubernetes liveness probe response."""

    status: Literal["ok"]


class ReadinessResponse(BaseModel):
    """Kubernetes readiness probe response."""

    status: Literal["ready", "not_ready"]
    details: dict[str, bool]


async def _database_ok(session: AsyncSession) -> bool:
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def _filesystem_ok(settings: Settings) -> bool:
    return settings.movies_dir.exists() or settings.movies_dir.parent.exists()


def _encoder_ok(settings: Settings) -> bool:
    return shutil.which(settings.ffmpeg_path) is not None and shutil.which(settings.ffprobe_path) is not None


@router.get("/health", response_model=HealthStatus)
async def health_check(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> HealthStatus:
    """Full health check endpoint."""
    db_status: Literal["connected", "disconnected"] = (
        "connected" if await _database_ok(session) else "disconnected"
    )
    fs_status: Literal["accessible", "inaccessible"] = (
        "accessible" if _filesystem_ok(settings) else "inaccessible"
    )
    encoder_status: Literal["available", "missing"] = (
        "available" if _encoder_ok(settings) else "missing"
    )

    # Determine overall status
    overall: Literal["healthy", "unhealthy", "degraded"]
    if db_status == "connected" and fs_status == "accessible" and encoder_status == "available":
        overall = "healthy"
    elif db_status == "connected":
        overall = "degraded"
    else:
        overall = "unhealthy"

    return HealthStatus(
        status=overall,
        database=db_status,
        filesystem=fs_status,
        encoder=encoder_status,
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_probe() -> LivenessResponse:
    """Kubernetes liveness probe - checks if app is running."""
    return LivenessResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_probe(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> ReadinessResponse:
    """Kubernetes readiness probe - checks if app can serve requests."""
    checks = {
        "database": await _database_ok(session),
        "filesystem": _filesystem_ok(settings),
        "encoder": _encoder_ok(settings),
    }

    return ReadinessResponse(
        status="ready" if all(checks.values()) else "not_ready",
        details=checks,
    )
