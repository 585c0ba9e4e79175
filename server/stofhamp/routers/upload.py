"""Image upload for listing photos and avatars."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..config import get_settings
from ..database.models import User
from ..dependencies import get_current_user
from ..services import images

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])


@router.post("/upload")
async def upload(file: UploadFile = File(...), user: User = Depends(get_current_user)):
    """Store an image with the hosting service and return its URL."""
    settings = get_settings()

    if file.content_type not in images.ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only image files can be uploaded")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=400, detail="File is too large")

    try:
        url = await images.upload_image(content, file.filename or "upload", file.content_type)
    except images.ImageUploadError as e:
        logger.error(f"Upload by {user.id} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return {"success": True, "data": {"url": url}}
