"""
Ponto Urbano Backend — Report ("problema") SQLAlchemy Model
=============================================================

What:  ORM model for the `problemas` table: one pin on the city map.
Who:   ReportService (list, create, photo removal).

Table Design Rationale:
    - latitude NUMERIC(10,8) / longitude NUMERIC(11,8): eight decimal places
      (~1mm), enough integer digits for ±90 / ±180
    - data: the day the citizen saw the problem, not when it was reported
    - usuario_id nullable: submissions always set it, but rows created before
      accounts existed have no owner. ON DELETE SET NULL keeps reports if a
      user is ever removed out-of-band.

Index on created_at:
    GET /problemas always sorts newest first over the whole table.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pontourbano.database import Base


class Report(Base):
    """
    A citizen-submitted urban problem at a geographic point.

    Lifecycle:
        1. Created by POST /problemas (owner = session user)
        2. Photo may be cleared by DELETE /problemas/{id}/foto
        3. Nothing else ever changes; never deleted via the API
    """

    __tablename__ = "problemas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    type: Mapped[str] = mapped_column("tipo", String(100), nullable=False)

    description: Mapped[str] = mapped_column("descricao", Text, nullable=False)

    occurred_on: Mapped[date] = mapped_column("data", Date, nullable=False)

    latitude: Mapped[Decimal] = mapped_column(Numeric(10, 8), nullable=False)

    longitude: Mapped[Decimal] = mapped_column(Numeric(11, 8), nullable=False)

    category: Mapped[str] = mapped_column("categoria", String(50), nullable=False)

    photo: Mapped[Optional[str]] = mapped_column("foto", String(500), nullable=True)

    owner_id: Mapped[Optional[int]] = mapped_column(
        "usuario_id",
        Integer,
        ForeignKey("usuarios.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    owner: Mapped[Optional["User"]] = relationship(back_populates="reports")  # noqa: F821

    __table_args__ = (
        Index("idx_problemas_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Report(id={self.id}, type='{self.type}', owner_id={self.owner_id})>"
