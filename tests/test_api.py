"""Tests for the Thumbnailer HTTP API."""

from __future__ import annotations

import base64
import os
from typing import TYPE_CHECKING
from unittest.mock import patch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import httpx
import pytest
from conftest import make_data_url, make_image_bytes
from fastapi import FastAPI, status

from thumbnailer.config import get_settings
from thumbnailer.imaging.codec import data_url_to_blob
from thumbnailer.imaging.errors import RenderQueueFullError
from thumbnailer.imaging.render_pool import RenderPool
from thumbnailer.main import build_http_client, create_app, init_app_state

_REMOTE_PNG = make_image_bytes(800, 400)


def _remote_images(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/receipt.png":
        return httpx.Response(200, content=_REMOTE_PNG, headers={"content-type": "image/png"})
    return httpx.Response(404)


def _init_app_state(app: FastAPI, **env_overrides: str) -> None:
    """Manually initialize app state (ASGITransport does not trigger lifespan)."""
    with patch.dict(os.environ, env_overrides):
        settings = get_settings()
    client = build_http_client(settings, transport=httpx.MockTransport(_remote_images))
    init_app_state(app, settings, client)


async def _make_client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
    pool: RenderPool = app.state.render_pool
    pool.shutdown()
    await app.state.http_client.aclose()


@pytest.fixture()
def app() -> FastAPI:
    """Create a fresh app instance with default settings."""
    application = create_app()
    _init_app_state(application)
    return application


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client for testing the app."""
    async for ac in _make_client(app):
        yield ac


class TestHealthEndpoint:
    async def test_health_returns_ok(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["concurrent_renders"] == 0
        assert data["queue_depth"] == 0
        assert data["cached_thumbnails"] == 0


class TestCreateThumbnailEndpoint:
    async def test_data_url_uses_default_options(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/thumbnails", json={"source": make_data_url(800, 400)})
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert (data["width"], data["height"]) == (400, 200)
        assert data["format"] == "jpeg"
        assert data["data_url"].startswith("data:image/jpeg;base64,")
        assert data["size"] > 0

    async def test_options_override_defaults(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/thumbnails",
            json={"source": make_data_url(300, 600), "options": {"max_height": 100, "format": "png"}},
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert (data["width"], data["height"]) == (50, 100)
        assert data["data_url"].startswith("data:image/png;base64,")

    async def test_remote_source(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/thumbnails", json={"source": "https://cdn.example.com/receipt.png"})
        assert response.status_code == status.HTTP_200_OK
        assert (response.json()["width"], response.json()["height"]) == (400, 200)

    async def test_unreachable_source_is_bad_gateway(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/thumbnails", json={"source": "https://cdn.example.com/gone.png"})
        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert "detail" in response.json()

    @pytest.mark.parametrize("source", ["http://", "http://\x00/a"])
    async def test_malformed_locator_is_bad_gateway(self, client: httpx.AsyncClient, source: str) -> None:
        response = await client.post("/api/v1/thumbnails", json={"source": source})
        assert response.status_code == status.HTTP_502_BAD_GATEWAY

    async def test_remote_source_over_size_limit_is_bad_gateway(self) -> None:
        app = create_app()
        _init_app_state(app, THUMBNAILER_MAX_FILE_SIZE="16")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/thumbnails", json={"source": "https://cdn.example.com/receipt.png"})
            assert response.status_code == status.HTTP_502_BAD_GATEWAY
            assert "exceeds 16 bytes" in response.json()["detail"]

    async def test_full_render_queue_is_service_unavailable(
        self, app: FastAPI, client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def refuse(*args: object) -> None:
            raise RenderQueueFullError("No render slot free after 5.0s")

        monkeypatch.setattr(app.state.thumbnail_service, "generate", refuse)
        response = await client.post("/api/v1/thumbnails", json={"source": make_data_url(10, 10)})
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["detail"] == "Render queue is full"

    async def test_undecodable_image_is_unprocessable(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/thumbnails", json={"source": "data:image/png;base64,AAAA"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_malformed_data_url_is_bad_request(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/thumbnails", json={"source": "data:image/png;base64,@@@"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_unknown_format_rejected(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/thumbnails",
            json={"source": make_data_url(10, 10), "options": {"format": "gif"}},
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_unknown_background_rejected(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/thumbnails",
            json={"source": make_data_url(10, 10), "options": {"background_color": "plaid"}},
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_out_of_range_quality_is_accepted(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/thumbnails",
            json={"source": make_data_url(10, 10), "options": {"quality": 3.0}},
        )
        assert response.status_code == status.HTTP_200_OK

    async def test_configured_defaults_apply(self) -> None:
        app = create_app()
        _init_app_state(app, THUMBNAILER_MAX_WIDTH="100", THUMBNAILER_FORMAT="webp")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/thumbnails", json={"source": make_data_url(800, 400)})
            assert response.status_code == status.HTTP_200_OK
            data = response.json()
            assert (data["width"], data["height"]) == (100, 50)
            assert data["format"] == "webp"


class TestUploadThumbnailEndpoint:
    async def test_upload_with_form_options(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/thumbnails/upload",
            files={"file": ("scan.jpg", make_image_bytes(800, 400, fmt="JPEG"), "image/jpeg")},
            data={"max_width": "200", "format": "png"},
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert (data["width"], data["height"]) == (200, 100)
        assert data["format"] == "png"

    async def test_upload_not_an_image(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/thumbnails/upload",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_upload_too_large(self) -> None:
        app = create_app()
        _init_app_state(app, THUMBNAILER_MAX_FILE_SIZE="16")
        async for ac in _make_client(app):
            response = await ac.post(
                "/api/v1/thumbnails/upload",
                files={"file": ("scan.png", make_image_bytes(64, 64), "image/png")},
            )
            assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class TestThumbnailCacheEndpoints:
    async def test_cache_lifecycle(self, client: httpx.AsyncClient) -> None:
        created = await client.post(
            "/api/v1/thumbnails",
            json={"source": make_data_url(40, 40), "cache_id": "receipt-42"},
        )
        assert created.status_code == status.HTTP_200_OK

        cached = await client.get("/api/v1/thumbnails/cache/receipt-42")
        assert cached.status_code == status.HTTP_200_OK
        assert cached.json()["id"] == "receipt-42"
        assert cached.json()["data_url"] == created.json()["data_url"]

        deleted = await client.delete("/api/v1/thumbnails/cache/receipt-42")
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

        missing = await client.get("/api/v1/thumbnails/cache/receipt-42")
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    async def test_delete_missing_entry(self, client: httpx.AsyncClient) -> None:
        response = await client.delete("/api/v1/thumbnails/cache/nothing")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestBlobEndpoints:
    async def test_decode_returns_raw_bytes(self, client: httpx.AsyncClient) -> None:
        payload = make_image_bytes(8, 8)
        data_url = "data:image/png;base64," + base64.b64encode(payload).decode()
        response = await client.post("/api/v1/blobs/decode", json={"data_url": data_url})
        assert response.status_code == status.HTTP_200_OK
        assert response.content == payload
        assert response.headers["content-type"] == "image/png"

    async def test_decode_malformed(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/blobs/decode", json={"data_url": "not a data url"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_encode_wraps_upload(self, client: httpx.AsyncClient) -> None:
        payload = make_image_bytes(8, 8, fmt="WEBP")
        response = await client.post(
            "/api/v1/blobs/encode",
            files={"file": ("tile.webp", payload, "image/webp")},
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["content_type"] == "image/webp"
        assert data["size"] == len(payload)
        blob = data_url_to_blob(data["data_url"])
        assert blob.data == payload


class TestAuthentication:
    async def test_no_auth_required_by_default(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == status.HTTP_200_OK

    async def test_auth_required_when_api_key_set(self) -> None:
        app = create_app()
        _init_app_state(app, THUMBNAILER_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/api/v1/health")
            assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_auth_passes_with_bearer_token(self) -> None:
        app = create_app()
        _init_app_state(app, THUMBNAILER_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/api/v1/health",
                headers={"Authorization": "Bearer test-secret-key"},
            )
            assert response.status_code == status.HTTP_200_OK

    async def test_auth_passes_with_api_key_header(self) -> None:
        app = create_app()
        _init_app_state(app, THUMBNAILER_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/api/v1/health", headers={"X-API-Key": "test-secret-key"})
            assert response.status_code == status.HTTP_200_OK

    async def test_auth_fails_with_wrong_key(self) -> None:
        app = create_app()
        _init_app_state(app, THUMBNAILER_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/api/v1/health",
                headers={"Authorization": "Bearer wrong-key"},
            )
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
