"""Integration tests for menu image uploads."""

from io import BytesIO

import pytest
from libs.common.config import get_settings
from PIL import Image
from services.gateway_service.app.main import app
from services.media_service.storage import StorageError, get_image_storage


def _png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color=(30, 140, 60)).save(buffer, format="PNG")
    return buffer.getvalue()


def _upload(data: bytes, content_type: str = "image/png", name: str = "dish.png"):
    return {"file": (name, data, content_type)}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_operator_uploads_image(client, fake_storage, seller_headers):
    response = await client.post(
        "/api/upload-image", files=_upload(_png_bytes()), headers=seller_headers
    )

    assert response.status_code == 200, response.text
    assert response.json()["url"].endswith("/dish.png")
    assert fake_storage.uploads[0][0] == "dish.png"
    assert fake_storage.uploads[0][2] == "image/png"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_non_image_rejected(client, fake_storage, admin_headers):
    response = await client.post(
        "/api/upload-image",
        files=_upload(b"hello", content_type="text/plain", name="notes.txt"),
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert fake_storage.uploads == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_image_content_type_with_garbage_bytes_rejected(
    client, fake_storage, admin_headers
):
    response = await client.post(
        "/api/upload-image",
        files=_upload(b"definitely not a png"),
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "File must be an image"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_file_rejected(client, admin_headers):
    response = await client.post(
        "/api/upload-image", files=_upload(b""), headers=admin_headers
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_oversized_file_rejected(client, admin_headers, monkeypatch):
    monkeypatch.setattr(get_settings(), "MAX_UPLOAD_BYTES", 16)

    response = await client.post(
        "/api/upload-image", files=_upload(_png_bytes()), headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("File too large")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_provider_failure_maps_to_bad_gateway(
    client, fake_storage, admin_headers
):
    fake_storage.error = StorageError("cloudinary down")

    response = await client.post(
        "/api/upload-image", files=_upload(_png_bytes()), headers=admin_headers
    )

    assert response.status_code == 502
    assert response.json() == {"error": "image upload failed"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unconfigured_hosting(client, admin_headers):
    app.dependency_overrides[get_image_storage] = lambda: None

    response = await client.post(
        "/api/upload-image", files=_upload(_png_bytes()), headers=admin_headers
    )

    assert response.status_code == 500
    assert response.json() == {"error": "image hosting not configured"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cannot_upload(client, user_headers):
    response = await client.post(
        "/api/upload-image", files=_upload(_png_bytes()), headers=user_headers
    )

    assert response.status_code == 403
