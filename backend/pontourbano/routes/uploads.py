"""
Ponto Urbano Backend — Uploaded File Serving
==============================================

What:  GET /uploads/{path} for photos kept by LocalBlobStorage, plus the helper
       that turns a multipart UploadFile into the service-layer UploadedFile.

Security:
    - LocalBlobStorage.resolve() rejects anything that escapes STORAGE_ROOT
    - Only files that exist are served; everything else is a 404 JSON body
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from starlette.datastructures import UploadFile

from pontourbano.container import ServiceContainer
from pontourbano.dependencies import get_container
from pontourbano.exceptions import NotFoundError
from pontourbano.services.image_service import ImageService, UploadedFile
from pontourbano.services.local_storage import URL_PREFIX

router = APIRouter(tags=["Uploads"])


async def to_uploaded_file(upload: Optional[UploadFile], images: ImageService) -> Optional[UploadedFile]:
    """
    Read a multipart file field. An empty file input counts as "no photo".

    Browsers submit an empty part (no filename, zero bytes) for a file input
    the user left untouched. The part's size is checked before its bytes are
    read into memory.

    Raises:
        UploadError: the part is larger than MAX_UPLOAD_SIZE.
    """
    if upload is None:
        return None
    try:
        if upload.size:
            images.validate_size(upload.size)
        content = await upload.read()
    finally:
        await upload.close()
    if not upload.filename and not content:
        return None
    return UploadedFile(
        filename=upload.filename or "",
        content=content,
        content_type=upload.content_type,
    )


@router.get(
    f"/{URL_PREFIX}/{{file_path:path}}",
    summary="Serve a locally stored photo",
    responses={200: {"description": "Image file"}, 404: {"description": "File not found"}},
)
async def serve_upload(
    file_path: str,
    container: ServiceContainer = Depends(get_container),
) -> FileResponse:
    full_path = container.local_storage.resolve(file_path)
    if not full_path.is_file():
        raise NotFoundError(resource="Arquivo", resource_id=file_path)

    # Photos are immutable (UUID names), so let browsers cache them
    return FileResponse(path=str(full_path), headers={"Cache-Control": "public, max-age=86400"})
