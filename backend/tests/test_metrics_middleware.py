"""
Tests for the request metrics middleware.
"""
import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY

from app.middleware.metrics_middleware import MetricsMiddleware


class TestPathNormalization:
    """Object keys must not become metric labels."""

    @pytest.mark.parametrize("path,expected", [
        ("/file/stream/2026-10-18/videos/x-clip.mp4", "/file/stream/{key}"),
        ("/file/download/2026-10-18/images/x-a.png", "/file/download/{key}"),
        ("/file/2026-10-18/images/x-a.png", "/file/{key}"),
        ("/file/upload", "/file/upload"),
        ("/file/presigned-url", "/file/presigned-url"),
        ("/analytics/overview", "/analytics/overview"),
    ])
    def test_normalize(self, path, expected):
        assert MetricsMiddleware._normalize_path(None, path) == expected


class TestRequestCounting:
    """Requests are counted under the normalized path."""

    @pytest.mark.asyncio
    async def test_missing_object_counted_under_placeholder(self, client: AsyncClient):
        labels = {"method": "GET", "path": "/file/stream/{key}", "status": "404"}
        before = REGISTRY.get_sample_value("http_requests_total", labels) or 0.0

        response = await client.get("/file/stream/2026-10-18/videos/missing.mp4")

        assert response.status_code == 404
        assert REGISTRY.get_sample_value("http_requests_total", labels) == before + 1
