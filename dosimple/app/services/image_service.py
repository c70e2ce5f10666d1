"""
Task image uploads to Cloudinary.
Uses the signed REST upload endpoint directly through httpx.
"""
from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass

import httpx

from app.core.config import settings
from app.core.exceptions import BadRequestException

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)
ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})

# Large images are scaled down to fit inside 1200x1200.
UPLOAD_TRANSFORMATION = "c_limit,h_1200,w_1200"


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary signature: sha1 of the sorted key=value pairs followed by the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    content: bytes


class ImageService:

    def validate(self, image: ImageUpload) -> None:
        """Raise BadRequestException for an empty, oversized or non-image upload."""
        filename, content_type, size = image.filename, image.content_type, len(image.content)
        if size == 0:
            raise BadRequestException("Image file is empty")
        if size > settings.max_image_size_bytes:
            raise BadRequestException(
                f"Image must not exceed {settings.MAX_IMAGE_SIZE_MB} MB"
            )
        extension = ""
        if filename and "." in filename:
            extension = "." + filename.rsplit(".", 1)[1].lower()
        if (content_type or "").lower() not in ALLOWED_CONTENT_TYPES or (
            extension and extension not in ALLOWED_EXTENSIONS
        ):
            raise BadRequestException(
                "Only JPEG, PNG, GIF and WEBP images are allowed"
            )

    async def upload(self, image: ImageUpload) -> str | None:
        """
        Upload an already validated image and return its secure URL.
        Returns None when the store is not configured or the upload fails.
        """
        if not settings.image_store_configured:
            logger.warning("Image store not configured; skipping upload of %s", image.filename)
            return None

        params = {
            "folder": settings.CLOUDINARY_FOLDER,
            "timestamp": str(int(time.time())),
            "transformation": UPLOAD_TRANSFORMATION,
        }
        data = {
            **params,
            "api_key": settings.CLOUDINARY_API_KEY,
            "signature": sign_params(params, settings.CLOUDINARY_API_SECRET),
        }
        url = f"https://api.cloudinary.com/v1_1/{settings.CLOUDINARY_CLOUD_NAME}/image/upload"

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    url,
                    data=data,
                    files={"file": (image.filename, image.content, image.content_type)},
                )
                response.raise_for_status()
                secure_url = response.json().get("secure_url")
        except (httpx.HTTPError, ValueError):
            logger.exception("Image upload failed for %s", image.filename)
            return None

        logger.info("Uploaded image %s to %s", image.filename, secure_url)
        return secure_url


image_service = ImageService()
