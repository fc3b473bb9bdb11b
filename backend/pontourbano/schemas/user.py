"""
Ponto Urbano Backend — User & Session Schemas
===============================================

What:  API contract for accounts: the public projection of a user, login input
       and the auth-check answer.
Why:   The ORM row holds the password hash; only these models ever reach the
       wire, so the hash can't leak through a careless `return user`.

Field names are the Portuguese keys the frontend was written against
(nome, senha, foto).
"""

from typing import Optional

from pydantic import BaseModel, Field

from pontourbano.schemas.common import MessageResponse


class PublicUser(BaseModel):
    """The subset of a user that is safe to show anyone."""
    id: int
    nome: str
    email: str
    foto: Optional[str] = Field(default=None, description="Photo reference (relative path or URL)")

    @classmethod
    def from_user(cls, user) -> "PublicUser":
        return cls(id=user.id, nome=user.name, email=user.email, foto=user.photo)


class UserResponse(MessageResponse):
    user: PublicUser


class LoginRequest(BaseModel):
    """
    JSON body for POST /login.

    Both fields are optional at the schema level so a missing one yields our
    own 400 "E-mail e senha são obrigatórios" instead of FastAPI's 422.
    """
    email: Optional[str] = None
    senha: Optional[str] = None


class SessionUser(BaseModel):
    """Identity cached in the session record; what /auth/check reports."""
    id: int
    nome: str
    email: str


class AuthCheckResponse(BaseModel):
    success: bool = True
    authenticated: bool
    user: Optional[SessionUser] = None
