"""
Ponto Urbano Backend — FastAPI Dependencies
=============================================

What:  The seam between route handlers and the ServiceContainer, plus the auth guard.
How:   Everything is read from request.app.state.container, never imported as a
       global. FastAPI caches dependencies per request, so a handler and the
       auth guard share one AsyncSession and one session lookup.

Auth guard:
    require_session short-circuits with AuthError (401) before the handler
    body runs, so an anonymous POST /problemas can't write a row or a file.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pontourbano.container import ServiceContainer
from pontourbano.exceptions import AuthError
from pontourbano.services.session_store import SESSION_KEY, SessionData


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_db_session(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    """One database session per request (commit on success, rollback on error)."""
    async with container.database.session() as session:
        yield session


async def get_current_session(
    request: Request,
    container: ServiceContainer = Depends(get_container),
) -> Optional[SessionData]:
    """
    The live server-side session for this request's cookie, or None.
    Answered by the SessionStore alone; no database query.

    A cookie pointing at an expired or revoked session is cleared, so the
    browser stops sending it.
    """
    token = request.session.get(SESSION_KEY)
    if not token:
        return None
    record = await container.session_store.get(token)
    if record is None:
        request.session.clear()
    return record


async def require_session(
    current: Optional[SessionData] = Depends(get_current_session),
) -> SessionData:
    """Auth guard: 401 unless the request carries a valid session."""
    if current is None:
        raise AuthError()
    return current
