"""
Ponto Urbano Backend — User SQLAlchemy Model
==============================================

What:  ORM model for the `usuarios` table.
Who:   UserService (registration, login, profile) and ReportService (owner join).

Table Design Rationale:
    - Integer identity key: matches the SERIAL ids the frontend already links to
      (/usuario/42)
    - email UNIQUE: the constraint, not the pre-insert lookup, is what keeps
      duplicate accounts out when two registrations race
    - senha: bcrypt hash only; the column name is kept for compatibility with
      databases created by earlier deployments
    - foto: either a local reference ("uploads/perfis/<uuid>.jpg") or a
      Cloudinary https URL
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pontourbano.database import Base


class User(Base):
    """
    A registered citizen.

    Lifecycle:
        1. Created by POST /cadastro
        2. Name and photo updated by PUT /perfil
        3. Never deleted by the API
    """

    __tablename__ = "usuarios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column("nome", String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # Never serialized: the public projection lives in schemas/user.py
    password_hash: Mapped[str] = mapped_column("senha", String(255), nullable=False)

    photo: Mapped[Optional[str]] = mapped_column("foto", String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    reports: Mapped[List["Report"]] = relationship(back_populates="owner")  # noqa: F821

    def __repr__(self) -> str:
        # No email, no hash: reprs end up in logs
        return f"<User(id={self.id}, name='{self.name}')>"
