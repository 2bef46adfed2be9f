"""
Avatar Image Service using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Reliable cloud infrastructure with stable secure URLs
2. Simple API
3. Free tier sufficient for personal use

This service handles:
1. Validating the upload (format and size) with PIL
2. Normalizing it to a square-bounded PNG/JPEG thumbnail
3. Uploading it to Cloudinary and returning the secure URL

Without a hosted backend or Cloudinary credentials there is nowhere to put
the file, so the thumbnail is embedded as a data: URL instead. Small
thumbnails keep that URL short enough to store in the profile.
"""

import base64
import hashlib
from io import BytesIO
from typing import Optional

import cloudinary
import cloudinary.uploader
from PIL import Image, UnidentifiedImageError
from tenacity import retry, stop_after_attempt, wait_exponential

from financeapp.config import AppSettings, CloudinarySettings, get_settings
from financeapp.log import get_logger


logger = get_logger(__name__)

# PIL format name -> extension used in the supported formats setting
_FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
}


class AvatarUploadError(Exception):
    """Base exception for avatar upload errors."""
    pass


class InvalidImageError(AvatarUploadError):
    """The upload is not a supported image or is too large."""
    pass


class AvatarImageService:
    """
    Service for profile avatar uploads.

    Flow:
    1. Validate raw bytes (size limit, decodable, supported format)
    2. Thumbnail to avatar_size_px
    3. Upload to Cloudinary when enabled, else build a data: URL
    """

    def __init__(
        self,
        cloudinary_settings: Optional[CloudinarySettings] = None,
        app_settings: Optional[AppSettings] = None,
        hosted_backend: bool = False,
    ):
        self._settings = cloudinary_settings or get_settings().cloudinary
        self._app_settings = app_settings or get_settings().app
        self._hosted_backend = hosted_backend
        self._configured = False

    @property
    def uploads_enabled(self) -> bool:
        """Cloudinary is used only alongside the hosted backend."""
        return self._hosted_backend and self._settings.is_configured

    @property
    def supported_formats(self) -> list[str]:
        return self._app_settings.supported_formats_list

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def _generate_public_id(self, user_id: str, image_bytes: bytes) -> str:
        """
        Generate a public ID for Cloudinary.

        Format: {user_id}_{content_hash}. Re-uploading the same picture
        overwrites the same asset.
        """
        content_hash = hashlib.md5(image_bytes).hexdigest()[:8]
        return f"{user_id}_{content_hash}"

    def validate_image(self, image_bytes: bytes) -> Image.Image:
        """
        Check size and format, returning the decoded image.

        Raises:
            InvalidImageError: Empty, too large, undecodable or unsupported
        """
        if not image_bytes:
            raise InvalidImageError("La imagen está vacía")

        if len(image_bytes) > self._app_settings.max_avatar_size_bytes:
            raise InvalidImageError(
                f"La imagen supera el tamaño máximo de "
                f"{self._app_settings.max_avatar_size_mb} MB"
            )

        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError(f"El archivo no es una imagen válida: {e}")

        extension = _FORMAT_EXTENSIONS.get(img.format or "")
        if extension is None or extension not in self._app_settings.supported_formats_list:
            raise InvalidImageError(f"Formato de imagen no soportado: {img.format}")

        return img

    def make_thumbnail(self, img: Image.Image) -> tuple[bytes, str]:
        """
        Shrink to fit avatar_size_px, keeping the aspect ratio.

        Returns: (image_bytes, mime_type). Images with transparency are
        kept as PNG, everything else becomes JPEG.
        """
        size = self._app_settings.avatar_size_px
        thumb = img.copy()
        thumb.thumbnail((size, size))

        has_alpha = thumb.mode in ("RGBA", "LA") or (
            thumb.mode == "P" and "transparency" in thumb.info
        )
        buffer = BytesIO()
        if has_alpha:
            thumb.convert("RGBA").save(buffer, format="PNG")
            return buffer.getvalue(), "image/png"

        thumb.convert("RGB").save(buffer, format="JPEG", quality=90)
        return buffer.getvalue(), "image/jpeg"

    @staticmethod
    def to_data_url(image_bytes: bytes, mime_type: str) -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upload(self, image_bytes: bytes, public_id: str) -> dict:
        return cloudinary.uploader.upload(
            image_bytes,
            public_id=public_id,
            folder=self._settings.folder,
            resource_type="image",
            overwrite=True,
        )

    async def upload_avatar(self, image_bytes: bytes, user_id: str) -> str:
        """
        Validate, normalize and store an avatar.

        Args:
            image_bytes: Raw uploaded file
            user_id: Owner, used in the Cloudinary public id

        Returns:
            The URL to save as the profile's avatar_url

        Raises:
            InvalidImageError: If the upload fails validation
            AvatarUploadError: If Cloudinary rejects the upload
        """
        img = self.validate_image(image_bytes)
        thumb_bytes, mime_type = self.make_thumbnail(img)

        if not self.uploads_enabled:
            logger.info("avatar_embedded", user_id=user_id, size=len(thumb_bytes))
            return self.to_data_url(thumb_bytes, mime_type)

        self._configure()
        try:
            result = self._upload(
                thumb_bytes,
                self._generate_public_id(user_id, thumb_bytes),
            )
        except cloudinary.exceptions.Error as e:
            raise AvatarUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise AvatarUploadError(f"Failed to upload avatar: {e}")

        url = result.get("secure_url", result.get("url", ""))
        if not url:
            raise AvatarUploadError("No URL returned from Cloudinary")

        logger.info("avatar_uploaded", user_id=user_id, url=url)
        return url
