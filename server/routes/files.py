"""Directory reconciliation and sandboxed artifact retrieval"""

import logging
import mimetypes
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from core.errors import SandboxViolation, WorkspaceInvalid
from core.reconciler import scan_directory
from core.workspace import resolve_in_sandbox
from server.config import Settings, get_settings
from server.models import ScanDirectoryResponse


logger = logging.getLogger(__name__)

router = APIRouter()

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
}


def _http_error(exc: WorkspaceInvalid) -> HTTPException:
    if isinstance(exc, SandboxViolation):
        return HTTPException(status_code=403, detail=exc.message)
    if exc.details.get("reason") == "missing":
        return HTTPException(status_code=404, detail=exc.message)
    return HTTPException(status_code=400, detail=exc.message)


@router.get("/scan-directory", response_model=ScanDirectoryResponse)
async def scan(
    path: str = Query("", description="Directory under the sandbox root"),
    settings: Settings = Depends(get_settings)
):
    """Pair image_{i} and audio_{i} files of a directory for later assembly"""
    if not path:
        raise HTTPException(status_code=400, detail="Missing directory path")
    try:
        result = scan_directory(path, sandbox_root=settings.sandbox_root)
    except WorkspaceInvalid as e:
        raise _http_error(e)
    return result.to_dict()


@router.get("/temp-file")
async def temp_file(
    path: str = Query("", description="Absolute path of an artifact under the sandbox root"),
    settings: Settings = Depends(get_settings)
):
    """Serve one artifact with a content type derived from its extension"""
    if not path:
        raise HTTPException(status_code=400, detail="Missing file path")
    try:
        file_path = resolve_in_sandbox(path, settings.sandbox_root)
    except WorkspaceInvalid as e:
        raise _http_error(e)

    if not file_path.is_file():
        raise HTTPException(status_code=404, detail="File not found")

    suffix = Path(file_path).suffix.lower()
    content_type = CONTENT_TYPES.get(suffix) or mimetypes.guess_type(str(file_path))[0] or "application/octet-stream"
    return FileResponse(
        str(file_path),
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=3600"},
    )
