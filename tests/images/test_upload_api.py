import io
import os

import pytest
from PIL import Image


def png_bytes(width=64, height=64):
    buffer = io.BytesIO()
    Image.frombytes("RGB", (width, height), os.urandom(width * height * 3)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.asyncio
async def test_upload_returns_data_uri(async_test_client, register):
    await register(async_test_client, "alice")
    raw = png_bytes()

    response = await async_test_client.post(
        "/api/upload-image", files={"image": ("cat.png", raw, "image/png")}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["contentType"] == "image/png"
    assert body["imageData"].startswith("data:image/png;base64,")

@pytest.mark.asyncio
async def test_upload_then_send_as_message(async_test_client, register, enter_room):
    await register(async_test_client, "alice")
    room_id = await enter_room(async_test_client)
    upload = (await async_test_client.post(
        "/api/upload-image", files={"image": ("cat.png", png_bytes(), "image/png")}
    )).json()

    response = await async_test_client.post(
        f"/api/messages/{room_id}", json={"imageData": upload["imageData"], "messageType": "image"}
    )
    assert response.status_code == 201
    message = response.json()["newMessage"]
    assert message["messageType"] == "image"
    assert message["imageData"] == upload["imageData"]

@pytest.mark.asyncio
async def test_upload_requires_session(async_test_client):
    response = await async_test_client.post(
        "/api/upload-image", files={"image": ("cat.png", png_bytes(), "image/png")}
    )
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_upload_without_file(async_test_client, register):
    await register(async_test_client, "alice")
    response = await async_test_client.post("/api/upload-image", data={"other": "field"})
    assert response.status_code == 400
    assert response.json()["message"] == "No image file uploaded"

@pytest.mark.asyncio
async def test_upload_rejects_non_image(async_test_client, register):
    await register(async_test_client, "alice")
    response = await async_test_client.post(
        "/api/upload-image", files={"image": ("notes.txt", b"hello", "text/plain")}
    )
    assert response.status_code == 400
