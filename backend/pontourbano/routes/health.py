"""
Ponto Urbano Backend — Health Check Route
===========================================

What:  Health check endpoint for uptime monitors and platform probes.
How:   Runs SELECT 1 against the database and reports the active photo
       storage backend.

Status levels:
    - healthy:   Database reachable (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503, stop routing traffic)

The image host is not probed: a Cloudinary outage only affects uploads, and
those already answer with a 500 of their own.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pontourbano import __version__
from pontourbano.container import ServiceContainer
from pontourbano.dependencies import get_container
from pontourbano.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
    summary="Service health check",
)
async def health_check(container: ServiceContainer = Depends(get_container)):
    database_ok = await container.database.ping()
    if not database_ok:
        logger.warning("Health check: database unreachable")

    body = HealthResponse(
        status="healthy" if database_ok else "unhealthy",
        version=__version__,
        database="connected" if database_ok else "disconnected",
        storage=container.blob_storage.backend_name,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if not database_ok:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
