"""
Ponto Urbano Backend — Local Disk Blob Storage
================================================

What:  Stores photos under STORAGE_ROOT and serves them back from /uploads.
Why:   The zero-configuration default; fine for a single instance with a
       persistent volume.
How:   Folder-per-kind directories with UUID filenames, async writes via aiofiles.

Directory Structure:
    uploads/
    ├── problemas/
    │   ├── a1b2c3d4-....jpg
    │   └── e5f6g7h8-....png
    └── perfis/
        └── 0c9d8e7f-....jpg

    The reference stored in the database is "uploads/<folder>/<file>", which is
    also the URL path the frontend puts in <img src>.

Security Model:
    - UUID filename: no user input ever reaches the file system path
    - resolve(): every read/delete re-checks that the resolved path stays
      inside STORAGE_ROOT (no ../ escapes through a crafted reference)
    - Content was already validated by ImageService before save() is called
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from pontourbano.exceptions import UploadError, ValidationError
from pontourbano.services.storage_base import BlobStorage

logger = logging.getLogger(__name__)

# URL path segment and reference prefix for locally stored photos
URL_PREFIX = "uploads"


class LocalBlobStorage(BlobStorage):
    """Blob storage on the local file system."""

    backend_name = "local"

    def __init__(self, storage_root: str):
        """
        Args:
            storage_root: Directory that holds every uploaded photo. Created if
                          missing (idempotent).
        """
        self.storage_root = Path(storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalBlobStorage initialized with storage_root=%s", self.storage_root)

    def _generate_storage_path(self, folder: str, extension: str) -> Tuple[Path, str]:
        """
        Generate a unique file path for a new photo.

        Returns: Tuple of (absolute_path, reference).
        """
        unique_name = f"{uuid.uuid4()}{extension}"
        relative_path = f"{folder}/{unique_name}"
        return self.storage_root / relative_path, f"{URL_PREFIX}/{relative_path}"

    def owns(self, reference: str) -> bool:
        return reference.startswith(f"{URL_PREFIX}/")

    def resolve(self, relative_path: str) -> Path:
        """
        Map a path below /uploads (or a full reference) to a file on disk.

        Raises:
            ValidationError: The path would escape STORAGE_ROOT.
        """
        if relative_path.startswith(f"{URL_PREFIX}/"):
            relative_path = relative_path[len(URL_PREFIX) + 1:]
        full_path = (self.storage_root / relative_path).resolve()
        if full_path != self.storage_root and self.storage_root not in full_path.parents:
            raise ValidationError(message="Caminho de arquivo inválido", field="foto")
        return full_path

    async def save(
        self,
        content: bytes,
        extension: str,
        folder: str,
        max_dimension: Optional[int] = None,
    ) -> str:
        """
        Write validated file content to disk.

        max_dimension is ignored: ImageService already downsized the bytes.

        Raises:
            UploadError (500) if directory creation or file write fails.
        """
        absolute_path, reference = self._generate_storage_path(folder, extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise UploadError(
                message="Falha ao salvar a imagem. Tente novamente.",
                status_code=500,
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", reference, len(content))
        return reference

    async def delete(self, reference: str) -> None:
        """
        Remove a stored photo. A file that is already gone is not an error.

        Raises:
            UploadError (500) on permission or I/O errors.
        """
        path = self.resolve(reference)
        try:
            os.remove(path)
            logger.info("Removed file: %s", reference)
        except FileNotFoundError:
            logger.debug("Delete: file already gone: %s", reference)
        except OSError as e:
            raise UploadError(
                message="Falha ao remover a imagem.",
                status_code=500,
                context={"path": str(path), "os_error": str(e)},
            )
