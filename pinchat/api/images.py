from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from pinchat.core.exceptions import InvalidInputException
from pinchat.dependencies.auth_dependencies import get_current_user
from pinchat.dependencies.service_dependencies import get_image_service
from pinchat.models.user import User
from pinchat.schemas.message import ImageUploadResponse
from pinchat.services.image_service import ImageService

router = APIRouter(prefix="/api", tags=["images"])

@router.post("/upload-image", response_model=ImageUploadResponse)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
):
    """
    Validate and compress an uploaded image, returning it as an inline data URI.

    Transcoding is CPU-bound, so it runs in the threadpool. Nothing bounds how
    many transcodes run at once.
    """
    if image is None:
        raise InvalidInputException(detail="No image file uploaded")

    # One byte past the ceiling is enough for ingest to reject oversized uploads
    raw = await image.read(image_service.max_bytes + 1)
    encoded = await run_in_threadpool(image_service.ingest, raw, image.content_type or "")
    return ImageUploadResponse(image_data=encoded.data_uri(), content_type=encoded.content_type)
