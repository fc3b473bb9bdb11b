"""
Ponto Urbano Backend — Account & Session Routes
=================================================

What:  POST /cadastro, POST /login, POST /logout, GET /auth/check.
How:   Thin handlers: read the body, call UserService / SessionStore, shape the
       `{success, message, ...}` envelope. Errors are raised and left to the
       global handlers in main.py.

Body formats:
    /cadastro and /login accept either JSON or form data. The map page posts
    JSON; the registration form switches to multipart when a profile photo
    is attached.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from pontourbano.container import ServiceContainer
from pontourbano.dependencies import get_container, get_current_session, get_db_session
from pontourbano.exceptions import ValidationError
from pontourbano.routes.uploads import to_uploaded_file
from pontourbano.schemas.common import ErrorResponse, MessageResponse
from pontourbano.schemas.user import (
    AuthCheckResponse,
    LoginRequest,
    PublicUser,
    SessionUser,
    UserResponse,
)
from pontourbano.services.session_store import SESSION_KEY, SessionData

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


async def read_body(request: Request) -> Tuple[Dict[str, Any], Dict[str, UploadFile]]:
    """
    Read a JSON or form body into (fields, files).

    Raises:
        ValidationError: malformed JSON, or a JSON body that isn't an object.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise ValidationError(message="JSON inválido")
        if not isinstance(payload, dict):
            raise ValidationError(message="JSON inválido")
        return {k: v if v is None else str(v) for k, v in payload.items()}, {}

    form = await request.form()
    fields: Dict[str, Any] = {}
    files: Dict[str, UploadFile] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files[key] = value
        else:
            fields[key] = value
    return fields, files


@router.post(
    "/cadastro",
    status_code=201,
    response_model=UserResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Register a new user",
)
async def register(
    request: Request,
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    fields, files = await read_body(request)
    photo = await to_uploaded_file(files.get("foto"), container.images)

    user = await container.users.register(
        db,
        name=fields.get("nome"),
        email=fields.get("email"),
        password=fields.get("senha"),
        photo=photo,
    )
    return UserResponse(message="Usuário criado com sucesso", user=PublicUser.from_user(user))


@router.post(
    "/login",
    response_model=UserResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Log in and open a session",
    description=(
        "Unknown email and wrong password return the same 400 body. "
        "On success the session cookie is set."
    ),
)
async def login(
    request: Request,
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    fields, _ = await read_body(request)
    credentials = LoginRequest.model_validate(fields)
    user = await container.users.authenticate(db, credentials.email, credentials.senha)

    # Never reuse a session id across logins
    await container.session_store.destroy(request.session.get(SESSION_KEY))
    token = await container.session_store.create(user)
    request.session.clear()
    request.session[SESSION_KEY] = token

    logger.info("User %s logged in", user.id)
    return UserResponse(message="Login realizado com sucesso", user=PublicUser.from_user(user))


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Close the current session",
)
async def logout(
    request: Request,
    container: ServiceContainer = Depends(get_container),
) -> MessageResponse:
    await container.session_store.destroy(request.session.get(SESSION_KEY))
    # Emptying the session makes SessionMiddleware expire the cookie
    request.session.clear()
    return MessageResponse(message="Logout realizado com sucesso")


@router.get(
    "/auth/check",
    response_model=AuthCheckResponse,
    response_model_exclude_none=True,
    summary="Is this browser logged in?",
)
async def auth_check(
    current: Optional[SessionData] = Depends(get_current_session),
) -> AuthCheckResponse:
    if current is None:
        return AuthCheckResponse(authenticated=False)
    return AuthCheckResponse(
        authenticated=True,
        user=SessionUser(id=current.user_id, nome=current.name, email=current.email),
    )
