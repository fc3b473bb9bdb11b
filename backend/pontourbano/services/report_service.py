"""
Ponto Urbano Backend — Report Service (Business Logic Orchestrator)
=====================================================================

What:  Listing, submission and photo removal for "problemas".
Who:   routes/reports.py.

Submission Flow (POST /problemas):
    ┌────────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Parse &   │───▶│  Validate   │───▶│  BlobStorage │───▶│  INSERT  │
    │  validate  │    │  photo      │    │  save()      │    │ problema │
    │  fields    │    │ (ImageServ) │    │              │    │          │
    └────────────┘    └─────────────┘    └──────────────┘    └──────────┘

    Fields are validated before the photo is even decoded, so a rejected
    submission never leaves a file behind. If the INSERT fails after the photo
    was stored, the photo is deleted before the error is raised. That is the
    only compensation: there is no transaction spanning file + row.

Coordinates:
    Parsed as Decimal, quantized to 8 places (the column scale) and checked
    against ±90 / ±180.
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pontourbano.exceptions import InternalError, NotFoundError, UploadError, ValidationError
from pontourbano.models.report import Report
from pontourbano.models.user import User
from pontourbano.schemas.report import ReportOut
from pontourbano.services.image_service import ImageService, UploadedFile
from pontourbano.services.storage_base import BlobStorage, storage_for

logger = logging.getLogger(__name__)

REPORT_FOLDER = "problemas"
COORDINATE_SCALE = Decimal("0.00000001")
DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}")

# Widths of the VARCHAR columns in models/report.py
FIELD_MAX_LENGTHS = {"tipo": 100, "categoria": 50}


def _parse_coordinate(raw, field: str, limit: int) -> Decimal:
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(message=f"Valor inválido para {field}", field=field)
    if not value.is_finite() or not -limit <= value <= limit:
        raise ValidationError(
            message=f"{field.capitalize()} deve estar entre -{limit} e {limit}",
            field=field,
        )
    return value.quantize(COORDINATE_SCALE)


def _parse_date(raw: str) -> date:
    raw = raw.strip()
    try:
        if not DATE_PREFIX.match(raw):
            raise ValueError(raw)
        if len(raw) == 10:
            return date.fromisoformat(raw)
        # A full ISO timestamp, as sent by <input type="datetime-local"> or toISOString()
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(message="Data inválida. Use o formato AAAA-MM-DD", field="data")


def _check_length(value: str, field: str) -> str:
    limit = FIELD_MAX_LENGTHS[field]
    if len(value) > limit:
        raise ValidationError(message=f"{field.capitalize()} deve ter no máximo {limit} caracteres", field=field)
    return value


def parse_report_fields(
    tipo: Optional[str],
    descricao: Optional[str],
    data: Optional[str],
    latitude,
    longitude,
    categoria: Optional[str],
) -> Dict:
    """
    Validate the raw form fields of a submission.

    Returns:
        Keyword arguments for the Report model.

    Raises:
        ValidationError: any field missing, blank or malformed.
    """
    required = {
        "tipo": tipo,
        "descricao": descricao,
        "data": data,
        "latitude": latitude,
        "longitude": longitude,
        "categoria": categoria,
    }
    missing = [name for name, value in required.items() if value is None or str(value).strip() == ""]
    if missing:
        raise ValidationError(
            message="Todos os campos são obrigatórios",
            context={"missing": missing},
        )

    return {
        "type": _check_length(tipo.strip(), "tipo"),
        "description": descricao.strip(),
        "occurred_on": _parse_date(data),
        "latitude": _parse_coordinate(latitude, "latitude", 90),
        "longitude": _parse_coordinate(longitude, "longitude", 180),
        "category": _check_length(categoria.strip(), "categoria"),
    }


class ReportService:
    """Report operations. Stateless apart from its collaborators."""

    def __init__(
        self,
        images: ImageService,
        storage: BlobStorage,
        photo_max_dimension: int,
        legacy_storages: Sequence[BlobStorage] = (),
    ):
        self.images = images
        self.storage = storage
        self.photo_max_dimension = photo_max_dimension
        self.storages = [storage, *legacy_storages]

    async def list_reports(self, db: AsyncSession) -> List[ReportOut]:
        """
        Every report, newest first, with the owner's public name and photo.

        Query plan:
            SELECT problemas.*, usuarios.nome, usuarios.foto
            FROM problemas LEFT OUTER JOIN usuarios ON problemas.usuario_id = usuarios.id
            ORDER BY problemas.created_at DESC, problemas.id DESC

        The id tie-break keeps the order stable for rows inserted within the
        same clock tick. No pagination: the map shows everything.
        """
        query = (
            select(Report, User.name, User.photo)
            .outerjoin(User, Report.owner_id == User.id)
            .order_by(Report.created_at.desc(), Report.id.desc())
        )
        try:
            result = await db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing reports: %s", str(e), exc_info=True)
            raise InternalError(
                message="Erro ao buscar problemas",
                context={"error_type": type(e).__name__},
            )

        return [ReportOut.from_row(report, owner_name, owner_photo) for report, owner_name, owner_photo in rows]

    async def create_report(
        self,
        db: AsyncSession,
        owner_id: int,
        fields: Dict,
        photo: Optional[UploadedFile] = None,
    ) -> Report:
        """
        Persist a validated submission.

        Args:
            db:       Request session
            owner_id: Id of the logged-in user (ownership is mandatory on write)
            fields:   Output of parse_report_fields()
            photo:    Optional raw photo upload

        Raises:
            UploadError:   photo rejected or not storable (nothing inserted)
            InternalError: INSERT failed (stored photo already deleted)
        """
        photo_ref = None
        if photo is not None:
            processed = await self.images.process(photo, max_dimension=self.photo_max_dimension)
            photo_ref = await self.storage.save(
                processed.content,
                processed.extension,
                folder=REPORT_FOLDER,
                max_dimension=self.photo_max_dimension,
            )

        report = Report(**fields, photo=photo_ref, owner_id=owner_id)
        db.add(report)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            await self.storage.discard(photo_ref)
            logger.error("Failed to save report: %s", str(e), exc_info=True)
            raise InternalError(
                message="Erro ao salvar problema",
                context={"owner_id": owner_id, "error_type": type(e).__name__},
            )

        logger.info("Report %s created by user %s (photo=%s)", report.id, owner_id, bool(photo_ref))
        return report

    async def remove_photo(self, db: AsyncSession, report_id: int) -> Report:
        """
        Delete a report's photo from its backend and clear the column.

        Best effort: if the column update fails after the blob was deleted,
        the blob is not restored.

        Raises:
            NotFoundError: unknown report id (nothing is touched)
            UploadError:   the backend refused the delete (column left as is)
            InternalError: database failure
        """
        try:
            report = await db.get(Report, report_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching report %s: %s", report_id, str(e))
            raise InternalError(context={"report_id": report_id, "error_type": type(e).__name__})
        if report is None:
            raise NotFoundError(resource="Problema", resource_id=report_id)

        if not report.photo:
            return report

        owner = storage_for(report.photo, self.storages)
        if owner is None:
            raise UploadError(
                message="Não foi possível identificar onde a foto está armazenada.",
                status_code=500,
                context={"report_id": report_id, "reference": report.photo},
            )
        await owner.delete(report.photo)

        report.photo = None
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Photo of report %s deleted but column not cleared: %s", report_id, str(e))
            raise InternalError(
                message="Erro ao remover foto",
                context={"report_id": report_id, "error_type": type(e).__name__},
            )

        logger.info("Photo removed from report %s", report_id)
        return report
