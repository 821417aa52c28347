import base64
import io
import os

import pytest
from PIL import Image

from pinchat.core.exceptions import (
    ImageTooLargeException,
    InvalidInputException,
    UnsupportedImageTypeException,
)
from pinchat.services.image_service import (
    DEFAULT_TIER,
    KIB,
    MIB,
    ImageService,
    parse_image_payload,
    select_tier,
)


def noise_image(width, height, mode="RGB"):
    return Image.frombytes(mode, (width, height), os.urandom(width * height * len(mode)))

def encode(img, fmt, **params):
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **params)
    return buffer.getvalue()


@pytest.mark.parametrize(
    "size, max_width, quality",
    [
        (3 * MIB, 1024, 60),
        (2 * MIB + 1, 1024, 60),
        (2 * MIB, 1200, 70),
        (1 * MIB + 1, 1200, 70),
        (600 * KIB, 1500, 75),
        (300 * KIB, None, 80),
    ],
)
def test_select_tier(size, max_width, quality):
    tier = select_tier(size)
    assert (tier.max_width, tier.quality) == (max_width, quality)

def test_small_image_passes_through():
    raw = encode(noise_image(220, 220), "PNG")
    assert len(raw) <= 200 * KIB

    result = ImageService().ingest(raw, "image/png")
    assert result.data == raw
    assert result.content_type == "image/png"

def test_large_image_is_downscaled_to_jpeg():
    raw = encode(noise_image(1600, 600), "JPEG", quality=95)
    assert len(raw) > 200 * KIB

    result = ImageService().ingest(raw, "image/jpeg")
    assert result.content_type == "image/jpeg"
    expected_width = min(1600, select_tier(len(raw)).max_width or 1600)
    with Image.open(io.BytesIO(result.data)) as img:
        assert img.format == "JPEG"
        assert img.width == expected_width

def test_transparent_image_is_flattened():
    raw = encode(noise_image(400, 400, "RGBA"), "PNG")
    assert len(raw) > 200 * KIB

    result = ImageService().ingest(raw, "image/png")
    assert result.content_type == "image/jpeg"
    with Image.open(io.BytesIO(result.data)) as img:
        assert img.mode == "RGB"

def test_non_image_mime_rejected():
    with pytest.raises(UnsupportedImageTypeException) as exc:
        ImageService().ingest(b"%PDF-1.4", "application/pdf")
    assert exc.value.status_code == 400

def test_oversized_upload_rejected():
    with pytest.raises(ImageTooLargeException) as exc:
        ImageService().ingest(b"\0" * (5 * MIB + 1), "image/png")
    assert exc.value.status_code == 413

def test_undecodable_bytes_rejected():
    with pytest.raises(UnsupportedImageTypeException):
        ImageService().ingest(b"not really a png", "image/png")
    with pytest.raises(UnsupportedImageTypeException):
        ImageService(passthrough_bytes=0).ingest(b"not really a png", "image/png")

def test_default_tier_keeps_width():
    assert DEFAULT_TIER.max_width is None
    raw = encode(noise_image(300, 300), "PNG")
    result = ImageService(passthrough_bytes=0).ingest(raw, "image/png")
    with Image.open(io.BytesIO(result.data)) as img:
        assert img.size == (300, 300)

def test_parse_data_uri():
    raw = encode(Image.new("RGB", (4, 4)), "GIF")
    image = parse_image_payload("data:image/gif;base64," + base64.b64encode(raw).decode())
    assert image.content_type == "image/gif"
    assert image.data == raw

def test_parse_bare_base64_needs_content_type():
    raw = encode(Image.new("RGB", (4, 4)), "PNG")
    payload = base64.b64encode(raw).decode()
    assert parse_image_payload(payload, "image/png").data == raw
    with pytest.raises(InvalidInputException):
        parse_image_payload(payload)

def test_parse_rejects_invalid_base64():
    with pytest.raises(InvalidInputException):
        parse_image_payload("data:image/png;base64,***")

def test_parse_rejects_non_image_bytes():
    payload = base64.b64encode(b"\x89PNG" + b"\0" * 64).decode()
    with pytest.raises(UnsupportedImageTypeException):
        parse_image_payload(payload, "image/png")

def test_parse_enforces_size_ceiling():
    raw = encode(noise_image(64, 64), "PNG")
    payload = base64.b64encode(raw).decode()
    assert parse_image_payload(payload, "image/png", max_bytes=len(raw)).data == raw
    with pytest.raises(ImageTooLargeException):
        parse_image_payload(payload, "image/png", max_bytes=len(raw) - 1)
    with pytest.raises(ImageTooLargeException):
        parse_image_payload(payload, "image/png", max_bytes=KIB)
