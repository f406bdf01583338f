"""Additional integration tests for health endpoints."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_ready_details(client: AsyncClient) -> None:
    res = await client.get("/health/ready")
    assert res.status_code == 200
    data = res.json()
    assert data["status"] in {"ready", "not_ready"}
    assert set(data["details"]) == {"database", "filesystem", "encoder"}


@pytest.mark.asyncio
async def test_health_can_be_healthy(client: AsyncClient) -> None:
    with patch("api.routes.health.shutil.which", return_value="/usr/bin/ffmpeg"):
        res = await client.get("/health")

    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
    assert res.json()["encoder"] == "available"


@pytest.mark.asyncio
async def test_health_degraded_without_encoder(client: AsyncClient) -> None:
    with patch("api.routes.health.shutil.which", return_value=None):
        res = await client.get("/health")

    data = res.json()
    assert data["status"] == "degraded"
    assert data["encoder"] == "missing"
    assert data["database"] == "connected"
