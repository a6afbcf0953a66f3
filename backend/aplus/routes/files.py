"""
A+ Marketplace Backend — Stored File Route
============================================

What:  Serves files written by FileService (note covers, course thumbnails,
       lesson videos) from the storage root.
How:   `file_service.resolve` rejects paths that escape the root (400) and
       missing files (404). Note documents are never served here; buyers
       and owners fetch them through GET /notes/{id}/download.
"""

from pathlib import PurePosixPath

from fastapi import APIRouter
from fastapi.responses import FileResponse

from aplus.exceptions import PermissionDeniedError
from aplus.schemas.common import ErrorResponse
from aplus.services.file_service import DOCUMENT, file_service

router = APIRouter(prefix="/api/v1", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    summary="Serve a stored file",
    responses={
        400: {"description": "Path escapes the storage root", "model": ErrorResponse},
        403: {"description": "Note documents require the download endpoint", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    if PurePosixPath(file_path).suffix.lower() in DOCUMENT.extensions:
        raise PermissionDeniedError(code="note.download_forbidden")

    path = file_service.resolve(file_path)
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
