"""
Ponto Urbano Backend — Profile Routes
=======================================

What:  PUT /perfil (own profile, session required) and GET /usuario/{id}
       (anyone's public projection).
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pontourbano.container import ServiceContainer
from pontourbano.dependencies import get_container, get_db_session, require_session
from pontourbano.routes.uploads import to_uploaded_file
from pontourbano.schemas.common import ErrorResponse
from pontourbano.schemas.user import PublicUser, UserResponse
from pontourbano.services.session_store import SessionData

router = APIRouter(tags=["Usuários"])


@router.put(
    "/perfil",
    response_model=UserResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Update name and/or photo of the logged-in user",
)
async def update_profile(
    nome: Optional[str] = Form(None),
    foto: Optional[UploadFile] = File(None),
    current: SessionData = Depends(require_session),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    photo = await to_uploaded_file(foto, container.images)
    user = await container.users.update_profile(db, current.user_id, name=nome, photo=photo)
    return UserResponse(message="Perfil atualizado com sucesso", user=PublicUser.from_user(user))


@router.get(
    "/usuario/{user_id}",
    response_model=UserResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Public profile of a user",
)
async def get_user(
    user_id: int,
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await container.users.get_user(db, user_id)
    return UserResponse(message="Usuário encontrado", user=PublicUser.from_user(user))
