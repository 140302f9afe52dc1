"""Storage utilities for handling image uploads with Cloudinary."""

import hashlib
import time
from io import BytesIO
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from PIL import Image, UnidentifiedImageError

logger = get_logger(__name__)


class StorageError(Exception):
    """The image host rejected an upload or could not be reached."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


def is_valid_image(image_data: bytes) -> bool:
    """Check the bytes decode as an image, whatever the declared content type."""
    try:
        with Image.open(BytesIO(image_data)) as img:
            img.verify()
        return True
    except (UnidentifiedImageError, OSError, SyntaxError):
        return False


def sign_params(params: dict, api_secret: str) -> str:
    """Cloudinary signature: sha1 of the sorted ``k=v`` pairs plus the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


class CloudinaryStorage:
    """Signed uploads to Cloudinary's image upload API."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "zoyabites",
        base_url: str = "https://api.cloudinary.com/v1_1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self._upload_url = f"{base_url.rstrip('/')}/{cloud_name}/image/upload"
        self._timeout = timeout
        self._transport = transport

    async def upload_image(
        self, file_data: bytes, filename: str, content_type: str = "image/jpeg"
    ) -> str:
        """
        Upload an image and return its public HTTPS URL.

        Raises:
            StorageError: If Cloudinary rejects the upload or is unreachable
        """
        timestamp = str(int(time.time()))
        signed = {"folder": self.folder, "timestamp": timestamp}
        form = {
            **signed,
            "api_key": self.api_key,
            "signature": sign_params(signed, self.api_secret),
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._upload_url,
                    data=form,
                    files={"file": (filename, file_data, content_type)},
                )
        except httpx.HTTPError as exc:
            logger.error(f"Cloudinary upload failed: {exc}")
            raise StorageError("Image host unreachable") from exc

        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text}

        if not response.is_success or not data.get("secure_url"):
            error = data.get("error") or {}
            logger.error(f"Cloudinary API error: {response.status_code} - {data}")
            raise StorageError(
                message=error.get("message", "Upload failed"),
                status_code=response.status_code,
                response_data=data,
            )

        return data["secure_url"]


def get_image_storage() -> Optional[CloudinaryStorage]:
    """Return the configured image host, or None when credentials are missing."""
    settings = get_settings()
    if not settings.cloudinary_configured:
        return None
    return CloudinaryStorage(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        folder=settings.CLOUDINARY_FOLDER,
        base_url=settings.CLOUDINARY_BASE_URL,
    )
