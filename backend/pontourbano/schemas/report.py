"""
Ponto Urbano Backend — Report Schemas
=======================================

What:  API contract for "problemas": the listing item and the creation result.
Why:   Coordinates are stored as NUMERIC but the map widget wants plain
       numbers, so the listing converts Decimal → float here rather than
       leaking Decimal-as-string JSON.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from pontourbano.schemas.common import MessageResponse


class ReportOut(BaseModel):
    """
    One map pin, joined with its owner's public name and photo.

    usuario_nome / usuario_foto are null for rows without an owner.
    """
    id: int
    tipo: str
    descricao: str
    data: date
    latitude: float
    longitude: float
    categoria: str
    foto: Optional[str] = None
    usuario_id: Optional[int] = None
    usuario_nome: Optional[str] = None
    usuario_foto: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_row(cls, report, owner_name: Optional[str], owner_photo: Optional[str]) -> "ReportOut":
        return cls(
            id=report.id,
            tipo=report.type,
            descricao=report.description,
            data=report.occurred_on,
            latitude=float(report.latitude),
            longitude=float(report.longitude),
            categoria=report.category,
            foto=report.photo,
            usuario_id=report.owner_id,
            usuario_nome=owner_name,
            usuario_foto=owner_photo,
            created_at=report.created_at,
        )


class ReportCreatedResponse(MessageResponse):
    """Returned with HTTP 201 by POST /problemas."""
    id: int
    foto: Optional[str] = Field(default=None, description="Stored photo reference, if any")
