"""
Ponto Urbano Backend — Image Service Unit Tests
=================================================

What:  Tests for upload validation (size, declared type, real format) and resizing.
Why:   Photo validation is the security boundary for everything users upload.
How:   Real images generated with Pillow; no storage, no database.
"""

import io
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image
from starlette.datastructures import UploadFile

from pontourbano.exceptions import UploadError
from pontourbano.routes.uploads import to_uploaded_file
from pontourbano.services.image_service import ImageService, UploadedFile


class TestImageValidation:
    """Size and declared content-type checks."""

    def setup_method(self):
        self.service = ImageService(max_upload_size=1024)

    def test_empty_file_rejected(self):
        with pytest.raises(UploadError, match="vazio") as exc_info:
            self.service.validate_size(0)
        assert exc_info.value.status_code == 400

    def test_size_at_limit_accepted(self):
        self.service.validate_size(1024)

    def test_size_over_limit_rejected(self):
        with pytest.raises(UploadError, match="tamanho máximo") as exc_info:
            self.service.validate_size(1025)
        assert exc_info.value.context["actual_size"] == 1025

    def test_non_image_content_type_rejected(self):
        with pytest.raises(UploadError, match="Apenas arquivos de imagem"):
            self.service.validate_content_type("application/pdf")

    def test_image_and_octet_stream_content_types_accepted(self):
        self.service.validate_content_type("image/heic")
        self.service.validate_content_type("application/octet-stream")
        self.service.validate_content_type(None)


class TestImageProcessing:
    """The full process() pipeline with real image bytes."""

    def setup_method(self):
        self.service = ImageService(max_upload_size=5 * 1024 * 1024)

    @pytest.mark.asyncio
    async def test_small_png_kept_as_is(self, sample_image_bytes):
        processed = await self.service.process(
            UploadedFile("foto.png", sample_image_bytes, "image/png"),
            max_dimension=400,
        )
        assert processed.content == sample_image_bytes
        assert processed.extension == ".png"
        assert processed.mime_type == "image/png"
        assert (processed.width, processed.height) == (64, 48)

    @pytest.mark.asyncio
    async def test_large_jpeg_downsized_keeping_aspect_ratio(self, make_image):
        content = make_image("JPEG", (2000, 1000))
        processed = await self.service.process(
            UploadedFile("grande.jpg", content, "image/jpeg"),
            max_dimension=400,
        )
        assert (processed.width, processed.height) == (400, 200)
        assert processed.extension == ".jpg"
        with Image.open(io.BytesIO(processed.content)) as image:
            assert image.format == "JPEG"
            assert image.size == (400, 200)

    @pytest.mark.asyncio
    async def test_no_max_dimension_keeps_size(self, make_image):
        content = make_image("JPEG", (1500, 900))
        processed = await self.service.process(UploadedFile("x.jpg", content, "image/jpeg"))
        assert processed.content == content

    @pytest.mark.asyncio
    async def test_format_detected_from_content_not_filename(self, make_image):
        """A GIF named .jpg is stored as .gif."""
        content = make_image("GIF", (32, 32))
        processed = await self.service.process(UploadedFile("disfarce.jpg", content, "image/jpeg"))
        assert processed.extension == ".gif"

    @pytest.mark.asyncio
    async def test_garbage_bytes_rejected(self):
        with pytest.raises(UploadError, match="não é uma imagem válida"):
            await self.service.process(UploadedFile("foto.png", b"definitely not a png", "image/png"))

    @pytest.mark.asyncio
    async def test_unsupported_format_rejected(self, make_image):
        content = make_image("BMP", (16, 16))
        with pytest.raises(UploadError, match="Formato de imagem não suportado"):
            await self.service.process(UploadedFile("foto.bmp", content, "image/bmp"))


class TestReadingUploads:
    """Turning a multipart part into an UploadedFile."""

    def setup_method(self):
        self.images = ImageService(max_upload_size=1024)

    @pytest.mark.asyncio
    async def test_oversized_part_rejected_before_reading(self):
        upload = UploadFile(file=io.BytesIO(b"x" * 2048), filename="grande.png", size=2048)
        with patch.object(upload, "read", AsyncMock(return_value=b"")) as read:
            with pytest.raises(UploadError, match="tamanho máximo"):
                await to_uploaded_file(upload, self.images)
        read.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_part_within_limit_is_read(self):
        upload = UploadFile(file=io.BytesIO(b"abc"), filename="foto.png", size=3)
        uploaded = await to_uploaded_file(upload, self.images)
        assert uploaded.content == b"abc"
        assert uploaded.filename == "foto.png"

    @pytest.mark.asyncio
    async def test_untouched_file_input_is_no_photo(self):
        upload = UploadFile(file=io.BytesIO(b""), filename="", size=0)
        assert await to_uploaded_file(upload, self.images) is None
