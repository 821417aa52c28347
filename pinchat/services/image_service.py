import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

from pinchat.core.config import settings
from pinchat.core.exceptions import (
    ImageProcessingException,
    ImageTooLargeException,
    InvalidInputException,
    UnsupportedImageTypeException,
)
from pinchat.core.log_config import logger

KIB = 1024
MIB = 1024 * KIB

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)


@dataclass(frozen=True)
class CompressionTier:
    """Re-encode settings applied to uploads strictly larger than ``min_bytes``."""
    min_bytes: int
    max_width: Optional[int]
    quality: int


# Checked top to bottom; the first tier the upload exceeds wins.
COMPRESSION_TIERS = (
    CompressionTier(min_bytes=2 * MIB, max_width=1024, quality=60),
    CompressionTier(min_bytes=1 * MIB, max_width=1200, quality=70),
    CompressionTier(min_bytes=500 * KIB, max_width=1500, quality=75),
)
DEFAULT_TIER = CompressionTier(min_bytes=0, max_width=None, quality=80)


def select_tier(size: int) -> CompressionTier:
    for tier in COMPRESSION_TIERS:
        if size > tier.min_bytes:
            return tier
    return DEFAULT_TIER


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    content_type: str

    def data_uri(self) -> str:
        """The image as an inline ``data:`` URI, the form messages embed."""
        return f"data:{self.content_type};base64,{base64.b64encode(self.data).decode('ascii')}"


def verify_image(raw: bytes) -> None:
    """Check that ``raw`` decodes as an image without loading its pixels."""
    try:
        with Image.open(BytesIO(raw)) as img:
            img.verify()
    except (OSError, SyntaxError) as e:
        raise UnsupportedImageTypeException(detail="Uploaded file is not a readable image.") from e


def parse_image_payload(
    image_data: str,
    content_type: Optional[str] = None,
    max_bytes: int = settings.max_image_bytes,
) -> EncodedImage:
    """
    Decode an image sent inside a message body.

    Accepts either a ``data:image/...;base64,`` URI or bare base64 with an
    explicit ``content_type``. Inline images get the same size ceiling and
    decode check as uploads.
    """
    match = DATA_URI_PATTERN.match(image_data.strip())
    if match:
        payload = match.group("payload")
        content_type = content_type or match.group("mime")
    else:
        payload = image_data

    if not content_type or not content_type.startswith("image/"):
        raise InvalidInputException(detail="Image content type is missing or not an image.")

    # Four base64 characters per three bytes; reject before decoding
    if len(payload) // 4 * 3 > max_bytes + 2:
        raise ImageTooLargeException(detail=f"Image exceeds the {max_bytes // MIB}MB limit.")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputException(detail="Image data is not valid base64.") from e

    if not data:
        raise InvalidInputException(detail="Image data is empty.")
    if len(data) > max_bytes:
        raise ImageTooLargeException(detail=f"Image exceeds the {max_bytes // MIB}MB limit.")
    verify_image(data)
    return EncodedImage(data=data, content_type=content_type)


class ImageService:
    """
    Bounded transcode of uploaded images into a size-capped inline format.

    Small uploads are passed through untouched. Larger ones are re-encoded as
    JPEG at a width/quality tier picked from the upload size.
    """

    def __init__(
        self,
        max_bytes: int = settings.max_image_bytes,
        passthrough_bytes: int = settings.image_passthrough_bytes,
    ):
        self.max_bytes = max_bytes
        self.passthrough_bytes = passthrough_bytes

    def ingest(self, raw: bytes, mime_type: str) -> EncodedImage:
        """
        Validate and, when needed, compress an uploaded image.

        Raises:
            UnsupportedImageTypeException: If the MIME type is not image/* or the bytes do not decode
            ImageTooLargeException: If the upload is above the size ceiling
            ImageProcessingException: If re-encoding fails
        """
        if not mime_type or not mime_type.startswith("image/"):
            raise UnsupportedImageTypeException()
        if len(raw) > self.max_bytes:
            raise ImageTooLargeException(detail=f"Image exceeds the {self.max_bytes // MIB}MB limit.")

        if len(raw) <= self.passthrough_bytes:
            verify_image(raw)
            return EncodedImage(data=raw, content_type=mime_type)

        tier = select_tier(len(raw))
        logger.info(
            f"Compressing {len(raw)} byte upload (max_width={tier.max_width}, quality={tier.quality})"
        )
        return EncodedImage(data=self._transcode(raw, tier), content_type="image/jpeg")

    def _transcode(self, raw: bytes, tier: CompressionTier) -> bytes:
        try:
            with Image.open(BytesIO(raw)) as img:
                img.load()
                if tier.max_width and img.width > tier.max_width:
                    height = max(1, round(img.height * tier.max_width / img.width))
                    img = img.resize((tier.max_width, height), Image.Resampling.NEAREST)
                img = _flatten(img)

                buffer = BytesIO()
                img.save(
                    buffer,
                    format="JPEG",
                    quality=tier.quality,
                    optimize=True,
                    progressive=True,
                    subsampling="4:2:0",
                )
                return buffer.getvalue()
        except UnidentifiedImageError as e:
            raise UnsupportedImageTypeException(detail="Uploaded file is not a readable image.") from e
        except Image.DecompressionBombError as e:
            raise ImageTooLargeException(detail="Image dimensions are too large.") from e
        except (OSError, ValueError) as e:
            logger.error(f"Error processing image: {e}")
            raise ImageProcessingException() from e


def _flatten(img: Image.Image) -> Image.Image:
    """JPEG has no alpha channel: composite transparent images onto white."""
    if img.mode in ("RGB", "L"):
        return img
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")
