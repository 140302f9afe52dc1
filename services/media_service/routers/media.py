"""Media service router: menu image uploads."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from libs.auth.dependencies import require_operator
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.media_service.storage import (
    CloudinaryStorage,
    StorageError,
    get_image_storage,
    is_valid_image,
)

logger = get_logger(__name__)

router = APIRouter(tags=["media"])


@router.post("/upload-image")
async def upload_image(
    file: UploadFile = File(...),
    current_user: AuthUser = Depends(require_operator),
    storage: Optional[CloudinaryStorage] = Depends(get_image_storage),
):
    """Upload a menu image and return its public URL."""
    if storage is None:
        raise HTTPException(status_code=500, detail="image hosting not configured")

    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")

    file_data = await file.read()
    if not file_data:
        raise HTTPException(status_code=400, detail="No file provided")

    max_bytes = get_settings().MAX_UPLOAD_BYTES
    if len(file_data) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large (max {max_bytes // (1024 * 1024)} MB)",
        )
    if not is_valid_image(file_data):
        raise HTTPException(status_code=400, detail="File must be an image")

    filename = file.filename or f"upload_{uuid.uuid4()}"
    try:
        url = await storage.upload_image(file_data, filename, content_type)
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="image upload failed"
        )

    logger.info(
        "Image uploaded",
        extra={
            "extra_fields": {
                "url": url,
                "size_bytes": len(file_data),
                "performed_by": current_user.user_id,
            }
        },
    )
    return {"url": url}
