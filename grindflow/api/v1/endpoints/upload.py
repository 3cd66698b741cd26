"""PDF upload endpoint."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from grindflow.api.v1.errors import to_http_exception
from grindflow.core.auth import get_current_user
from grindflow.core.config import settings
from grindflow.core.exceptions import AppError
from grindflow.dependencies import get_document_service
from grindflow.schemas.api import UploadResponse
from grindflow.schemas.auth import CurrentUser
from grindflow.services.document_service import DocumentService

router = APIRouter()


@router.post(
    "",
    response_model=UploadResponse,
    summary="Upload a PDF",
    operation_id="upload_document",
)
async def upload_document(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
    file: Optional[UploadFile] = File(None, description="PDF document to upload"),
) -> UploadResponse:
    """Store a PDF in the documents bucket and record it for the user."""
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    content = await file.read()
    if len(content) > settings.supabase.upload_size_limit:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")

    try:
        result = await document_service.upload_document(
            current_user.id, file.filename or "", content, file.content_type
        )
    except AppError as e:
        raise to_http_exception(e) from e
    return UploadResponse(**result)
