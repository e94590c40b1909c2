import base64

import cloudinary
import cloudinary.uploader
from starlette.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.logger import get_logger

DEFAULT_FOLDER = "ai_generated_images"
UPLOADS_FOLDER = "user_uploads"

logger = get_logger(__name__)


class UploadError(Exception):
    pass


class CloudinaryStorage:
    def __init__(self, settings: Settings):
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )

    async def upload(self, data: str, folder: str = DEFAULT_FOLDER) -> str:
        """Upload a data URI or remote URL and return its https URL."""
        try:
            result = await run_in_threadpool(cloudinary.uploader.upload, data, folder=folder)
        except Exception as e:
            logger.exception("cloudinary_upload_failed", folder=folder)
            raise UploadError("Cloudinary upload failed") from e
        return result["secure_url"]


def base64_data_uri(image_base64: str, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{image_base64}"


def to_data_uri(raw: bytes, mime_type: str) -> str:
    return base64_data_uri(base64.b64encode(raw).decode("ascii"), mime_type)
