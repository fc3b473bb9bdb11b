"""
Ponto Urbano Backend — Abstract Blob Storage Interface
========================================================

What:  Abstract base class for "somewhere a validated photo can live".
Why:   Deployments store photos either on local disk (served from /uploads) or
       on Cloudinary. Route handlers and services shouldn't care which; they
       save bytes, get back a reference string, and later delete by reference.
How:   LocalBlobStorage and CloudinaryBlobStorage implement save()/delete()/owns().
       The ServiceContainer picks the primary implementation from
       STORAGE_BACKEND at startup.

References:
    A reference is whatever gets written to the `foto` columns:
        local:      "uploads/problemas/3f1c...e9.jpg"   (relative, served by us)
        cloudinary: "https://res.cloudinary.com/<cloud>/image/upload/v17.../x.jpg"
    owns() lets a service find the backend a reference belongs to, so photos
    uploaded before a deployment switched backends can still be removed.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from pontourbano.exceptions import UploadError

logger = logging.getLogger(__name__)


class BlobStorage(ABC):
    """
    Abstract interface for persisting uploaded photos.

    Contract:
        - save() returns a reference string suitable for a `foto` column
        - delete() of a reference that no longer exists is not an error
        - all backend-specific failures are raised as UploadError (status 500)
    """

    backend_name: str = "abstract"

    @abstractmethod
    async def save(
        self,
        content: bytes,
        extension: str,
        folder: str,
        max_dimension: Optional[int] = None,
    ) -> str:
        """
        Persist already-validated image bytes.

        Args:
            content:       Image bytes (validated by ImageService)
            extension:     Normalized extension including the dot (".jpg")
            folder:        Logical namespace, e.g. "problemas" or "perfis"
            max_dimension: Longest side the stored image may have; backends
                           that can transform server-side use it

        Returns:
            The reference to store in the database.

        Raises:
            UploadError: The write or the remote upload failed.
        """
        ...

    @abstractmethod
    async def delete(self, reference: str) -> None:
        """
        Remove a stored photo.

        Raises:
            UploadError: The backend refused or could not be reached.
        """
        ...

    @abstractmethod
    def owns(self, reference: str) -> bool:
        """True if `reference` was produced by this backend."""
        ...

    async def discard(self, reference: Optional[str]) -> None:
        """
        Best-effort delete used for compensation and replaced photos.

        What:  Removes an orphan blob after a later step (row insert, profile
               update) failed or made it obsolete.
        Why:   The caller is already reporting a more relevant error, or has
               already succeeded; a leftover file is logged, not surfaced.
        """
        if not reference:
            return
        try:
            await self.delete(reference)
        except UploadError as e:
            logger.warning(
                "Could not discard %s blob %s: %s | Context: %s",
                self.backend_name, reference, e.message, e.context,
            )

    async def close(self) -> None:
        """Release network clients; a no-op for backends without any."""
        return None


def storage_for(reference: str, storages: Sequence[BlobStorage]) -> Optional[BlobStorage]:
    """Return the first backend that owns `reference`, or None."""
    for storage in storages:
        if storage.owns(reference):
            return storage
    return None
