"""Unit Tests - Service banner and health check."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "environment": "development",
        "version": "1.0.0",
    }


@pytest.mark.asyncio
async def test_unknown_route_keeps_error_shape(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/nao-existe")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
