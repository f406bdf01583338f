"""Integration tests for health endpoints."""

import pytest
from httpx import AsyncClient


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient) -> None:
        """Test full health check endpoint."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()

        assert "status" in data
        assert data["status"] in ["healthy", "unhealthy", "degraded"]
        assert "database" in data
        assert "filesystem" in data
        assert data["encoder"] in ["available", "missing"]
        assert "version" in data
        assert "environment" in data

    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient) -> None:
        """Test Kubernetes liveness check."""
        response = await client.get("/health/live")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"

    @pytest.mark.asyncio
    async def test_readiness(self, client: AsyncClient) -> None:
        """Test Kubernetes readiness check."""
        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()

        assert "status" in data
        assert data["status"] in ["ready", "not_ready"]
        assert "details" in data
        assert isinstance(data["details"], dict)

    @pytest.mark.asyncio
    async def test_readiness_needs_encoder(self, client: AsyncClient, test_settings) -> None:
        """Test readiness fails when ffmpeg cannot be found."""
        test_settings.ffmpeg_path = "/nonexistent/ffmpeg"

        response = await client.get("/health/ready")

        data = response.json()
        assert data["status"] == "not_ready"
        assert data["details"]["encoder"] is False
        assert data["details"]["database"] is True
