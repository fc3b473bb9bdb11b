"""
Ponto Urbano Backend — Report ("problemas") Routes
====================================================

What:  GET /problemas, POST /problemas, DELETE /problemas/{id}/foto.

Request Flow (POST /problemas):
    1. require_session: 401 before anything else if not logged in
    2. Form fields parsed and validated (400 on any missing/malformed field)
    3. ReportService stores the optional photo, then inserts the row
    4. 201 with the new id and the photo reference

All form fields are declared optional so a missing one produces our own
"Todos os campos são obrigatórios" 400 rather than FastAPI's 422.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pontourbano.container import ServiceContainer
from pontourbano.dependencies import get_container, get_db_session, require_session
from pontourbano.routes.uploads import to_uploaded_file
from pontourbano.schemas.common import ErrorResponse, MessageResponse
from pontourbano.schemas.report import ReportCreatedResponse, ReportOut
from pontourbano.services.report_service import parse_report_fields
from pontourbano.services.session_store import SessionData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/problemas", tags=["Problemas"])


@router.get(
    "",
    response_model=List[ReportOut],
    responses={500: {"model": ErrorResponse}},
    summary="List every report, newest first",
)
async def list_reports(
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> List[ReportOut]:
    return await container.reports.list_reports(db)


@router.post(
    "",
    status_code=201,
    response_model=ReportCreatedResponse,
    responses={
        400: {"description": "Missing/invalid field or photo", "model": ErrorResponse},
        401: {"description": "Not logged in", "model": ErrorResponse},
        500: {"description": "Storage or database failure", "model": ErrorResponse},
    },
    summary="Submit a new report",
)
async def create_report(
    tipo: Optional[str] = Form(None),
    descricao: Optional[str] = Form(None),
    data: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    categoria: Optional[str] = Form(None),
    foto: Optional[UploadFile] = File(None, description="Optional photo (JPEG, PNG, GIF, WEBP; max 5MB)"),
    current: SessionData = Depends(require_session),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> ReportCreatedResponse:
    # Validate before reading the photo: a rejected form never touches storage
    fields = parse_report_fields(tipo, descricao, data, latitude, longitude, categoria)
    photo = await to_uploaded_file(foto, container.images)

    report = await container.reports.create_report(db, current.user_id, fields, photo)
    return ReportCreatedResponse(
        message="Problema registrado com sucesso",
        id=report.id,
        foto=report.photo,
    )


@router.delete(
    "/{report_id}/foto",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"description": "Unknown report id", "model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Remove the photo of a report",
)
async def remove_photo(
    report_id: int,
    current: SessionData = Depends(require_session),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await container.reports.remove_photo(db, report_id)
    logger.info("User %s removed the photo of report %s", current.user_id, report_id)
    return MessageResponse(message="Foto removida com sucesso")
