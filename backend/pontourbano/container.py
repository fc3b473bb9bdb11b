"""
Ponto Urbano Backend — Service Container
==========================================

What:  The one object that owns every long-lived resource of an app instance:
       settings, the database pool, blob storage, the session store and the
       services built on top of them.
Why:   No process-wide singletons. create_app() builds a container and parks it
       on app.state; dependencies.py hands its parts to route handlers. Tests
       build their own container with a throwaway database and storage.

Storage selection:
    STORAGE_BACKEND=local       → LocalBlobStorage is primary
    STORAGE_BACKEND=cloudinary  → CloudinaryBlobStorage is primary, and the local
                                  backend stays available as a legacy owner so
                                  photos written before the switch can still be
                                  served and removed.
"""

import logging
from typing import Optional

from pontourbano.config import Settings
from pontourbano.database import Database
from pontourbano.services.cloudinary_storage import CloudinaryBlobStorage
from pontourbano.services.image_service import ImageService
from pontourbano.services.local_storage import LocalBlobStorage
from pontourbano.services.password_service import PasswordHasher
from pontourbano.services.report_service import ReportService
from pontourbano.services.session_store import MemorySessionStore, SessionStore
from pontourbano.services.storage_base import BlobStorage
from pontourbano.services.user_service import UserService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Explicitly constructed dependency graph for one application."""

    def __init__(
        self,
        settings: Settings,
        database: Optional[Database] = None,
        blob_storage: Optional[BlobStorage] = None,
        session_store: Optional[SessionStore] = None,
    ):
        """
        Args:
            settings:     Configuration for this instance
            database:     Override the Database (defaults to one built from settings)
            blob_storage: Override the primary storage backend (tests)
            session_store: Override the session store (defaults to in-process memory)
        """
        self.settings = settings
        self.database = database or Database(settings)

        self.local_storage = LocalBlobStorage(settings.storage_root)
        if blob_storage is not None:
            self.blob_storage = blob_storage
        elif settings.storage_backend == "cloudinary":
            self.blob_storage = CloudinaryBlobStorage(settings)
        else:
            self.blob_storage = self.local_storage
        legacy = [self.local_storage] if self.blob_storage is not self.local_storage else []

        self.passwords = PasswordHasher(rounds=settings.bcrypt_rounds)
        self.images = ImageService(max_upload_size=settings.max_upload_size)
        self.session_store = session_store or MemorySessionStore(max_age=settings.session_max_age)

        self.users = UserService(
            hasher=self.passwords,
            images=self.images,
            storage=self.blob_storage,
            sessions=self.session_store,
            profile_photo_size=settings.profile_photo_size,
            legacy_storages=legacy,
        )
        self.reports = ReportService(
            images=self.images,
            storage=self.blob_storage,
            photo_max_dimension=settings.report_photo_max_dimension,
            legacy_storages=legacy,
        )

    async def startup(self) -> None:
        """Create tables (IF NOT EXISTS). Storage directories exist already."""
        await self.database.create_tables()
        logger.info(
            "Services ready (storage=%s, root=%s)",
            self.blob_storage.backend_name,
            self.local_storage.storage_root,
        )

    async def shutdown(self) -> None:
        await self.session_store.close()
        await self.blob_storage.close()
        await self.database.dispose()
