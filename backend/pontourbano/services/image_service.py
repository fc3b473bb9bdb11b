"""
Ponto Urbano Backend — Photo Validation & Normalization
=========================================================

What:  Turns a raw multipart upload into bytes that are safe to store.
Why:   The browser-supplied filename and Content-Type are hints at best. A photo
       is only accepted if Pillow can actually decode it as one of the allowed
       formats, and anything bigger than the configured dimension is downsized
       before it ever reaches a storage backend.
Who:   UserService (profile photos) and ReportService (report photos).

Validation order (cheapest first):
    1. Empty / oversized payload       → UploadError 400
    2. Declared Content-Type not image → UploadError 400
    3. Pillow decode + verify          → UploadError 400 if not a real image
    4. Format allow-list               → UploadError 400 for e.g. TIFF, BMP
    5. Downsize if longer side > max   → re-encoded in the same format

Pillow work is CPU-bound, so it runs in Starlette's threadpool instead of on
the event loop.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from pontourbano.exceptions import UploadError

logger = logging.getLogger(__name__)

# Pillow format name → stored extension / MIME type
ALLOWED_FORMATS = {
    "JPEG": (".jpg", "image/jpeg"),
    "PNG": (".png", "image/png"),
    "GIF": (".gif", "image/gif"),
    "WEBP": (".webp", "image/webp"),
}


@dataclass
class UploadedFile:
    """A photo as received from the client, before any validation."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


@dataclass
class ProcessedImage:
    """Validated (and possibly downsized) image ready for BlobStorage.save()."""
    content: bytes
    extension: str
    mime_type: str
    width: int
    height: int


class ImageService:
    """Validates and normalizes uploaded photos."""

    def __init__(self, max_upload_size: int):
        self.max_upload_size = max_upload_size

    def validate_size(self, size: int) -> None:
        max_mb = self.max_upload_size / (1024 * 1024)
        if size == 0:
            raise UploadError(message="O arquivo de imagem está vazio.")
        if size > self.max_upload_size:
            raise UploadError(
                message=f"A imagem excede o tamanho máximo de {max_mb:.0f}MB.",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def validate_content_type(self, content_type: Optional[str]) -> None:
        # Browsers send application/octet-stream for some camera formats;
        # only reject types that are explicitly something other than an image.
        if content_type and not (
            content_type.startswith("image/") or content_type == "application/octet-stream"
        ):
            raise UploadError(
                message="Apenas arquivos de imagem são permitidos.",
                context={"content_type": content_type},
            )

    def _decode(self, content: bytes, max_dimension: Optional[int]) -> ProcessedImage:
        """Synchronous Pillow work; called through run_in_threadpool."""
        try:
            with Image.open(io.BytesIO(content)) as probe:
                image_format = probe.format
                probe.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise UploadError(
                message="O arquivo enviado não é uma imagem válida.",
                context={"error": type(e).__name__},
            )

        if image_format not in ALLOWED_FORMATS:
            raise UploadError(
                message="Formato de imagem não suportado. Use JPEG, PNG, GIF ou WEBP.",
                context={"format": image_format},
            )
        extension, mime_type = ALLOWED_FORMATS[image_format]

        # verify() leaves the image unusable; reopen for the real work
        with Image.open(io.BytesIO(content)) as image:
            width, height = image.size
            if not max_dimension or max(width, height) <= max_dimension:
                return ProcessedImage(content, extension, mime_type, width, height)

            image = ImageOps.exif_transpose(image)
            image.thumbnail((max_dimension, max_dimension))
            if image_format == "JPEG" and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")

            out = io.BytesIO()
            image.save(out, format=image_format)
            logger.debug(
                "Downsized %s image from %dx%d to %dx%d",
                image_format, width, height, image.width, image.height,
            )
            return ProcessedImage(out.getvalue(), extension, mime_type, image.width, image.height)

    async def process(self, upload: UploadedFile, max_dimension: Optional[int] = None) -> ProcessedImage:
        """
        Complete validation pipeline for one uploaded photo.

        Args:
            upload:        Raw upload from the route layer
            max_dimension: Longest side allowed after processing (None = keep size)

        Raises:
            UploadError (400): Empty, too large, wrong type or undecodable file.
        """
        self.validate_size(len(upload.content))
        self.validate_content_type(upload.content_type)
        processed = await run_in_threadpool(self._decode, upload.content, max_dimension)
        logger.info(
            "Accepted photo %s (%s, %dx%d, %d bytes)",
            upload.filename or "<unnamed>", processed.mime_type,
            processed.width, processed.height, len(processed.content),
        )
        return processed
