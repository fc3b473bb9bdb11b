"""
Ponto Urbano Backend — Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions for every failure the API reports.
Why:   Services raise these instead of building error dicts; the global handlers
       in main.py turn them into `{success: false, message, ...}` responses with
       the right status code.
How:   Each exception carries a user-facing message (Portuguese, shown by the
       frontend as-is), an optional context dict that is only logged, and the
       HTTP status it maps to.

Exception Hierarchy:
    PontoUrbanoError (base)
    ├── ValidationError   → 400 Bad Request
    ├── AuthError         → 401 Unauthorized (400 for rejected credentials)
    ├── ConflictError     → 400 Bad Request (duplicate email)
    ├── NotFoundError     → 404 Not Found
    ├── UploadError       → 400 (bad file) / 500 (storage or image host failure)
    └── InternalError     → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class PontoUrbanoError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status the global handler responds with
        error_code:  Machine-readable code placed in the `error` field
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "Erro interno no servidor",
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.context = context or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(PontoUrbanoError):
    """
    Raised when client input fails validation.

    When:  Missing required fields, malformed date or coordinates.
    HTTP:  400 (FastAPI's own 422s are converted to this shape too)
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Todos os campos são obrigatórios",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(PontoUrbanoError):
    """
    Raised when a request has no valid session, or a login is rejected.

    Login failures use one message and one status for both "unknown email" and
    "wrong password" so the endpoint can't be used to discover accounts.
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Não autorizado. Faça login primeiro.",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, status_code=status_code)


class ConflictError(PontoUrbanoError):
    """
    Raised when a unique resource already exists (e.g. registered email).

    Raised both by the pre-insert lookup and when the UNIQUE constraint fires
    on insert, so two racing registrations end up with the same response.
    """

    status_code = 400
    error_code = "conflict"

    def __init__(
        self,
        message: str = "E-mail já cadastrado",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PontoUrbanoError):
    """Raised when a requested resource does not exist."""

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "Recurso",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} não encontrado"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class UploadError(PontoUrbanoError):
    """
    Raised when an uploaded photo is rejected or cannot be persisted.

    HTTP:
        400 — wrong type, too large, not decodable as an image
        500 — disk write failed or the image host rejected/timed out
    """

    status_code = 400
    error_code = "upload_error"

    def __init__(
        self,
        message: str = "Não foi possível processar a imagem enviada",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, status_code=status_code)


class InternalError(PontoUrbanoError):
    """
    Raised when the database or another internal dependency fails.

    The message returned to the client stays generic; the context
    (exception type, ids involved) only goes to the server log.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "Erro interno no servidor",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
