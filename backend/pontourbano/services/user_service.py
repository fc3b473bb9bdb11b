"""
Ponto Urbano Backend — User Service
=====================================

What:  Registration, credential checks, public profiles and profile updates.
Why:   Keeps the account rules (required fields, email uniqueness, hashing,
       photo handling, compensation) out of the route handlers.
Who:   routes/auth.py and routes/users.py.

Registration Flow (POST /cadastro):
    ┌──────────┐   ┌────────────┐   ┌─────────┐   ┌─────────────┐   ┌────────┐
    │ Required │──▶│ Email free?│──▶│ bcrypt  │──▶│ Photo →     │──▶│ INSERT │
    │ fields   │   │ (fast path)│   │ hash    │   │ BlobStorage │   │ usuario│
    └──────────┘   └────────────┘   └─────────┘   └─────────────┘   └────────┘

    On failure:
    - Photo rejected/unstorable → UploadError, nothing inserted
    - INSERT hits the UNIQUE(email) constraint (a concurrent registration won
      the race after our pre-check) → photo discarded, ConflictError
    - Any other database error → photo discarded, InternalError

Design Decision:
    The pre-insert lookup only exists to answer the common case quickly.
    The UNIQUE constraint is the source of truth; no application-level locks.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pontourbano.exceptions import (
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from pontourbano.models.user import User
from pontourbano.services.image_service import ImageService, UploadedFile
from pontourbano.services.password_service import PasswordHasher
from pontourbano.services.session_store import SessionStore
from pontourbano.services.storage_base import BlobStorage, storage_for

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "E-mail ou senha incorretos"
PROFILE_FOLDER = "perfis"

# Widths of the VARCHAR columns in models/user.py
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 100


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_length(value: str, field: str, limit: int) -> None:
    if len(value) > limit:
        raise ValidationError(message=f"{field.capitalize()} deve ter no máximo {limit} caracteres", field=field)


class UserService:
    """Account operations. Stateless apart from its collaborators."""

    def __init__(
        self,
        hasher: PasswordHasher,
        images: ImageService,
        storage: BlobStorage,
        sessions: SessionStore,
        profile_photo_size: int,
        legacy_storages: Sequence[BlobStorage] = (),
    ):
        self.hasher = hasher
        self.images = images
        self.storage = storage
        self.sessions = sessions
        self.profile_photo_size = profile_photo_size
        # Backends that may own photos written before the current one was chosen
        self.storages = [storage, *legacy_storages]

    async def _email_taken(self, db: AsyncSession, email: str) -> bool:
        result = await db.execute(select(User.id).where(User.email == email))
        return result.scalar_one_or_none() is not None

    async def _store_photo(self, photo: UploadedFile) -> str:
        processed = await self.images.process(photo, max_dimension=self.profile_photo_size)
        return await self.storage.save(
            processed.content,
            processed.extension,
            folder=PROFILE_FOLDER,
            max_dimension=self.profile_photo_size,
        )

    async def _discard_photo(self, reference: Optional[str]) -> None:
        if not reference:
            return
        owner = storage_for(reference, self.storages)
        if owner is None:
            logger.warning("No storage backend owns photo %s; leaving it", reference)
            return
        await owner.discard(reference)

    async def register(
        self,
        db: AsyncSession,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        photo: Optional[UploadedFile] = None,
    ) -> User:
        """
        Create a new account.

        Returns:
            The persisted User (callers expose it through PublicUser only).

        Raises:
            ValidationError: name, email or password missing/blank
            ConflictError:   email already registered (pre-check or constraint)
            UploadError:     profile photo rejected or could not be stored
            InternalError:   database failure
        """
        name, email = _clean(name), _clean(email)
        if not name or not email or not password:
            raise ValidationError(message="Todos os campos são obrigatórios")
        _check_length(name, "nome", NAME_MAX_LENGTH)
        _check_length(email, "email", EMAIL_MAX_LENGTH)
        email = email.lower()

        try:
            if await self._email_taken(db, email):
                raise ConflictError()
        except SQLAlchemyError as e:
            logger.error("Email lookup failed during registration: %s", str(e))
            raise InternalError(message="Erro ao criar usuário", context={"error_type": type(e).__name__})

        password_hash = await self.hasher.hash(password)

        photo_ref = await self._store_photo(photo) if photo else None

        user = User(name=name, email=email, password_hash=password_hash, photo=photo_ref)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # Lost the race against a concurrent registration with this email
            await db.rollback()
            await self._discard_photo(photo_ref)
            logger.info("Registration rejected by unique constraint")
            raise ConflictError()
        except SQLAlchemyError as e:
            await db.rollback()
            await self._discard_photo(photo_ref)
            logger.error("Failed to insert user: %s", str(e), exc_info=True)
            raise InternalError(message="Erro ao criar usuário", context={"error_type": type(e).__name__})

        logger.info("User %s registered (photo=%s)", user.id, bool(photo_ref))
        return user

    async def authenticate(
        self,
        db: AsyncSession,
        email: Optional[str],
        password: Optional[str],
    ) -> User:
        """
        Check credentials.

        Unknown email and wrong password raise the *same* AuthError (400) so the
        endpoint can't be used to find out which emails have accounts.
        """
        email = _clean(email)
        if not email or not password:
            raise ValidationError(message="E-mail e senha são obrigatórios")

        try:
            result = await db.execute(select(User).where(User.email == email.lower()))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("User lookup failed during login: %s", str(e))
            raise InternalError(message="Erro ao fazer login", context={"error_type": type(e).__name__})

        if user is None:
            await self.hasher.dummy_verify()
            raise AuthError(message=INVALID_CREDENTIALS, status_code=400)

        if not await self.hasher.verify(password, user.password_hash):
            raise AuthError(message=INVALID_CREDENTIALS, status_code=400)

        return user

    async def get_user(self, db: AsyncSession, user_id: int) -> User:
        """
        Raises:
            NotFoundError: no user with this id
        """
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise InternalError(context={"user_id": user_id, "error_type": type(e).__name__})
        if user is None:
            raise NotFoundError(resource="Usuário", resource_id=user_id)
        return user

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: int,
        name: Optional[str] = None,
        photo: Optional[UploadedFile] = None,
    ) -> User:
        """
        Change display name and/or profile photo of the logged-in user.

        The cached name on the user's sessions and the previous photo are only
        touched after the commit succeeded.

        Raises:
            ValidationError: neither a name nor a photo was supplied
            NotFoundError:   the session points at a user that no longer exists
            UploadError:     new photo rejected or could not be stored
            InternalError:   database failure (the new photo is discarded)
        """
        name = _clean(name)
        if name is None and photo is None:
            raise ValidationError(message="Informe um nome ou uma foto para atualizar")
        if name is not None:
            _check_length(name, "nome", NAME_MAX_LENGTH)

        user = await self.get_user(db, user_id)

        new_photo = await self._store_photo(photo) if photo else None
        old_photo = user.photo if new_photo else None

        if name is not None:
            user.name = name
        if new_photo:
            user.photo = new_photo

        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            await self._discard_photo(new_photo)
            logger.error("Failed to update profile of user %s: %s", user_id, str(e))
            raise InternalError(
                message="Erro ao atualizar perfil",
                context={"user_id": user_id, "error_type": type(e).__name__},
            )

        if name is not None:
            await self.sessions.rename(user_id, name)
        await self._discard_photo(old_photo)
        logger.info("Profile of user %s updated (name=%s, photo=%s)", user_id, name is not None, bool(new_photo))
        return user
