"""
Ponto Urbano Backend — Shared Response Schemas
================================================

Every JSON body the API returns carries `success` and `message`; the frontend
branches on `success` and shows `message` verbatim.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Base envelope for all non-list responses."""
    success: bool = Field(default=True)
    message: str = Field(description="Human-readable outcome, shown to the user")


class ErrorResponse(MessageResponse):
    """
    What:  Standardized error body, produced by the handlers in main.py.

    Example:
        {
            "success": false,
            "message": "Todos os campos são obrigatórios",
            "error": "validation_error",
            "request_id": "a1b2c3d4"
        }
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response for load balancers and uptime monitors."""
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    storage: str = Field(description="Active photo storage backend")
    uptime_seconds: float
