"""Image hosting on Cloudinary through its signed upload API."""

import hashlib
import logging
import time
from typing import Optional

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    "image/bmp",
}


class ImageUploadError(Exception):
    """Raised when an image cannot be stored."""


def sign_params(params: dict, api_secret: str) -> str:
    """Cloudinary request signature: sha1 of the sorted params plus the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


async def upload_image(
    content: bytes,
    filename: str,
    content_type: str,
    settings: Optional[Settings] = None,
) -> str:
    """Upload an image and return its secure URL."""
    settings = settings or get_settings()

    if not settings.cloudinary_configured:
        raise ImageUploadError("Image hosting is not configured")

    params = {
        "folder": settings.upload_folder,
        "timestamp": int(time.time()),
    }
    data = {
        **params,
        "api_key": settings.cloudinary_api_key,
        "signature": sign_params(params, settings.cloudinary_api_secret),
    }
    url = f"https://api.cloudinary.com/v1_1/{settings.cloudinary_cloud_name}/image/upload"

    logger.info(f"Uploading {filename} ({len(content)} bytes) to Cloudinary")
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                data=data,
                files={"file": (filename, content, content_type)},
                timeout=30.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"Cloudinary upload failed: {e}")
        raise ImageUploadError(f"Image upload failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"Cloudinary upload rejected ({response.status_code}): {response.text}")
        raise ImageUploadError(f"Image upload rejected with status {response.status_code}")

    secure_url = response.json().get("secure_url")
    if not secure_url:
        raise ImageUploadError("Image upload returned no URL")

    logger.info(f"Cloudinary upload complete: {secure_url}")
    return secure_url
