"""Upload endpoints - multipart upload with text extraction, download, delete."""

import logging
import re
import time
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from backend.app.api.auth import get_current_user
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.files.extract import (
    ALLOWED_MIME_TYPES,
    EXTRACTABLE_MIME_TYPES,
    MAX_FILES_PER_UPLOAD,
    MAX_UPLOAD_BYTES,
    ExtractionError,
    extract_text,
    file_type_category,
)
from backend.app.models.documents import UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/uploads", tags=["uploads"], dependencies=[Depends(get_current_user)])


def _ascii_filename(name: str) -> str:
    return re.sub(r"[^\w.\-]+", "_", name, flags=re.ASCII) or "download"


@router.get("", response_model=list[UploadedFile])
async def list_uploads(storage: Annotated[Storage, Depends(get_storage)]) -> list[UploadedFile]:
    """All uploaded files, newest first."""
    return storage.list_uploaded_files()


@router.post("", response_model=list[UploadedFile])
async def upload_files(
    storage: Annotated[Storage, Depends(get_storage)],
    files: Annotated[list[UploadFile] | None, File()] = None,
) -> list[UploadedFile]:
    """Store up to 10 files and extract text from documents.

    Extraction failures are logged; the file is still stored, without text.

    Raises:
        HTTPException: 400 for no files, too many files or a disallowed type;
            413 for a file over 50 MB
    """
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")
    if len(files) > MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_FILES_PER_UPLOAD} files per upload",
        )
    for upload in files:
        if upload.content_type not in ALLOWED_MIME_TYPES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file type")

    # Every file is read and size-checked before any is stored
    contents: list[bytes] = []
    for upload in files:
        data = await upload.read()
        if len(data) > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large: {upload.filename}",
            )
        contents.append(data)

    stored: list[UploadedFile] = []
    for upload, data in zip(files, contents):
        mime_type = upload.content_type or ""
        filename = upload.filename or "upload"
        extracted: str | None = None
        if mime_type in EXTRACTABLE_MIME_TYPES:
            try:
                extracted = await run_in_threadpool(extract_text, data, mime_type)
            except ExtractionError as e:
                logger.warning(f"Failed to extract text from {filename}: {e}")

        stored.append(
            storage.create_uploaded_file(
                UploadedFile(
                    filename=filename,
                    file_type=file_type_category(mime_type),
                    mime_type=mime_type,
                    size_bytes=len(data),
                    storage_url=f"memory://{int(time.time() * 1000)}-{filename}",
                    extracted_content=extracted or None,
                ),
                data,
            )
        )

    logger.info(f"Stored {len(stored)} uploaded files")
    return stored


@router.get("/{file_id}/content")
async def download_file(
    file_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Response:
    """Raw bytes of an uploaded file."""
    file = storage.get_uploaded_file(file_id)
    data = storage.get_file_content(file_id) if file else None
    if file is None or data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return Response(
        content=data,
        media_type=file.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{_ascii_filename(file.filename)}"'},
    )


@router.delete("/{file_id}")
async def delete_file(
    file_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> dict[str, bool]:
    """Delete an uploaded file and its bytes."""
    if not storage.delete_uploaded_file(file_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return {"success": True}
