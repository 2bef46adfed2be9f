"""Image services package."""

from financeapp.services.image.avatar_service import (
    AvatarImageService,
    AvatarUploadError,
    InvalidImageError,
)

__all__ = [
    "AvatarImageService",
    "AvatarUploadError",
    "InvalidImageError",
]
