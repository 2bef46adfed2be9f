"""Tests for avatar validation, thumbnails and uploads."""

import asyncio
import base64
from io import BytesIO

import cloudinary.uploader
import pytest
from PIL import Image

from financeapp.config import AppSettings, CloudinarySettings
from financeapp.services.image import (
    AvatarImageService,
    AvatarUploadError,
    InvalidImageError,
)


def image_bytes(fmt: str = "PNG", size=(600, 400), mode: str = "RGB") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color=(200, 30, 30) if mode == "RGB" else (200, 30, 30, 128)).save(
        buffer, format=fmt
    )
    return buffer.getvalue()


def make_service(hosted: bool = False, **app_overrides) -> AvatarImageService:
    cloud = CloudinarySettings(
        _env_file=None, cloud_name="demo", api_key="key", api_secret="secret"
    )
    app = AppSettings(_env_file=None, **app_overrides)
    return AvatarImageService(cloud, app, hosted_backend=hosted)


class TestValidation:
    """Tests for validate_image."""

    def test_accepts_supported_formats(self):
        service = make_service()
        assert service.validate_image(image_bytes("PNG")).format == "PNG"
        assert service.validate_image(image_bytes("JPEG")).format == "JPEG"

    def test_rejects_empty(self):
        with pytest.raises(InvalidImageError):
            make_service().validate_image(b"")

    def test_rejects_garbage(self):
        with pytest.raises(InvalidImageError, match="no es una imagen"):
            make_service().validate_image(b"definitely not an image")

    def test_rejects_unsupported_format(self):
        with pytest.raises(InvalidImageError, match="no soportado"):
            make_service().validate_image(image_bytes("BMP"))

    def test_rejects_oversized(self):
        service = make_service(max_avatar_size_mb=1)
        too_big = b"\x00" * (1024 * 1024 + 1)
        with pytest.raises(InvalidImageError, match="tamaño máximo"):
            service.validate_image(too_big)

    def test_format_list_is_configurable(self):
        service = make_service(supported_image_formats="jpg, JPEG")
        assert service.supported_formats == ["jpg", "jpeg"]
        with pytest.raises(InvalidImageError):
            service.validate_image(image_bytes("PNG"))


class TestThumbnail:
    """Tests for make_thumbnail."""

    def test_fits_inside_square(self):
        service = make_service(avatar_size_px=128)
        data, mime = service.make_thumbnail(Image.open(BytesIO(image_bytes("PNG"))))

        assert mime == "image/jpeg"
        thumb = Image.open(BytesIO(data))
        assert max(thumb.size) == 128
        assert thumb.size == (128, 85)

    def test_transparency_stays_png(self):
        service = make_service()
        src = Image.open(BytesIO(image_bytes("PNG", size=(64, 64), mode="RGBA")))
        data, mime = service.make_thumbnail(src)
        assert mime == "image/png"
        assert Image.open(BytesIO(data)).mode == "RGBA"


class TestUploadAvatar:
    """Tests for upload_avatar."""

    def test_local_mode_returns_data_url(self):
        service = make_service(hosted=False)
        assert not service.uploads_enabled

        url = asyncio.run(service.upload_avatar(image_bytes("JPEG"), "1"))

        assert url.startswith("data:image/jpeg;base64,")
        decoded = base64.b64decode(url.split(",", 1)[1])
        assert Image.open(BytesIO(decoded)).format == "JPEG"

    def test_hosted_mode_uploads(self, monkeypatch):
        calls = []

        def fake_upload(data, **options):
            calls.append(options)
            return {"secure_url": "https://res.cloudinary.com/demo/avatar.jpg"}

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
        service = make_service(hosted=True)

        url = asyncio.run(service.upload_avatar(image_bytes("PNG"), "u1"))

        assert url == "https://res.cloudinary.com/demo/avatar.jpg"
        assert calls[0]["folder"] == "financeapp/avatars"
        assert calls[0]["public_id"].startswith("u1_")
        assert calls[0]["overwrite"] is True

    def test_hosted_without_credentials_embeds(self):
        service = AvatarImageService(
            CloudinarySettings(_env_file=None), AppSettings(_env_file=None), hosted_backend=True
        )
        assert not service.uploads_enabled
        url = asyncio.run(service.upload_avatar(image_bytes("PNG"), "u1"))
        assert url.startswith("data:")

    def test_upload_failure_is_wrapped(self, monkeypatch):
        service = make_service(hosted=True)

        def boom(data, public_id):
            raise RuntimeError("network down")

        monkeypatch.setattr(service, "_upload", boom)
        with pytest.raises(AvatarUploadError, match="network down"):
            asyncio.run(service.upload_avatar(image_bytes("PNG"), "u1"))

    def test_missing_url_is_an_error(self, monkeypatch):
        monkeypatch.setattr(cloudinary.uploader, "upload", lambda data, **options: {})
        service = make_service(hosted=True)
        with pytest.raises(AvatarUploadError, match="No URL"):
            asyncio.run(service.upload_avatar(image_bytes("PNG"), "u1"))

    def test_invalid_image_is_not_uploaded(self, monkeypatch):
        monkeypatch.setattr(
            cloudinary.uploader, "upload", lambda *a, **k: pytest.fail("should not upload")
        )
        with pytest.raises(InvalidImageError):
            asyncio.run(make_service(hosted=True).upload_avatar(b"nope", "u1"))
